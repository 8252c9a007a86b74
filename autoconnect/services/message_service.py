import logging
import re
from datetime import datetime
from typing import Optional

from autoconnect.config import settings
from autoconnect.workflow.state import Profile

logger = logging.getLogger("autoconnect")

# ---------------------------------------------------------------------------
# Deterministic fallback used whenever message generation fails
# ---------------------------------------------------------------------------

FALLBACK_TEMPLATE = "Hi {name}, I'd love to connect with you{company}. Looking forward to networking!"

TEMPLATE_VARIABLES = {
    "{firstName}": "First name of the person",
    "{lastName}": "Last name of the person",
    "{fullName}": "Full name of the person",
    "{company}": "Company name",
    "{title}": "Job title",
    "{location}": "Location",
    "{currentDate}": "Current date",
    "{currentDay}": "Current day of week",
    "{currentMonth}": "Current month",
}


def build_fallback_message(profile: Profile, template: Optional[str] = None) -> str:
    """Connection note built only from the profile's own fields. Never empty."""
    template = template if template is not None else settings.fallback_template
    if template and not validate_template(template):
        message = personalize_message(template, profile)
        if message:
            return clean_message(message)

    company = f" at {profile.company}" if profile.company else ""
    return clean_message(
        FALLBACK_TEMPLATE.format(name=profile.first_name or "there", company=company)
    )


def clean_message(message: str, max_chars: Optional[int] = None) -> str:
    """Strip wrapping quotes and cap the note at LinkedIn's length limit."""
    max_chars = max_chars or settings.connection_note_max_chars
    message = re.sub(r"^[\"']|[\"']$", "", (message or "").strip()).strip()
    if len(message) > max_chars:
        message = message[: max_chars - 3] + "..."
    return message


# ---------------------------------------------------------------------------
# Template personalization
# ---------------------------------------------------------------------------

def personalize_message(template: str, profile: Profile, now: Optional[datetime] = None) -> str:
    """Replace {variables} with profile data, then tidy the result."""
    if not template:
        return template
    now = now or datetime.now()
    replacements = {
        "{firstName}": profile.first_name,
        "{lastName}": profile.last_name,
        "{fullName}": profile.name,
        "{company}": profile.company,
        "{title}": profile.title,
        "{location}": profile.location,
        "{currentDate}": now.strftime("%m/%d/%Y"),
        "{currentDay}": now.strftime("%A"),
        "{currentMonth}": now.strftime("%B"),
    }
    message = template
    for variable, value in replacements.items():
        message = re.sub(re.escape(variable), lambda _m, v=value: v, message, flags=re.I)
    return cleanup_message(message)


def cleanup_message(message: str) -> str:
    message = re.sub(r"\{[^}]*\}", "", message)
    message = re.sub(r"\s+", " ", message)
    message = re.sub(r"\s+([,.!?])", r"\1", message)
    return message.strip()


def validate_template(template: str) -> list[str]:
    """Return a list of problems with ``template``; empty means usable."""
    if not template or not template.strip():
        return ["Template cannot be empty"]

    errors = []
    if template.count("{") != template.count("}"):
        errors.append("Unmatched braces in template")

    known = {v.lower() for v in TEMPLATE_VARIABLES}
    for variable in re.findall(r"\{[^}]*\}", template):
        if variable.lower() not in known:
            errors.append(f"Unknown variable: {variable}")

    if len(template) > settings.connection_note_max_chars:
        errors.append(
            f"Message template is too long (max {settings.connection_note_max_chars} characters)"
        )
    return errors
