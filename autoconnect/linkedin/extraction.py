"""
Turn raw result-card data scraped from the page into validated Profiles.

The browser side only copies text and hrefs out of the DOM; every cleaning
and validity rule lives here so it can be tested without a browser.
Cards that do not yield a valid Profile are dropped silently.
"""
import logging
import re
from typing import Optional

from pydantic import ValidationError

from autoconnect.linkedin.urls import canonicalize_url, clean_lead_url, is_profile_url
from autoconnect.workflow.state import Profile, ProfileSource

logger = logging.getLogger("autoconnect")

_NAME_NOISE = re.compile(r"\n|•|View\b|Status is|is reachable|is offline")
_DEGREE = re.compile(r"\b(1st|2nd|3rd\+?)\b|degree connection", re.I)


def clean_name_text(text: str) -> str:
    """Cut LinkedIn's decorations ("View Jane's profile", "• 2nd", status) off a name."""
    text = (text or "").strip()
    if not text:
        return ""
    head = _NAME_NOISE.split(text, maxsplit=1)[0]
    return " ".join(head.split())


def is_valid_name(text: str) -> bool:
    return bool(text) and len(text) > 2 and not any(
        marker in text for marker in ("Status", "View", "•")
    )


def split_headline(title: str, company: str = "") -> tuple[str, str]:
    """'Engineer at Acme' -> ('Engineer', 'Acme') unless the company is already known."""
    title = " ".join((title or "").split())
    company = " ".join((company or "").split())
    if _DEGREE.search(title) and len(title) < 40:
        title = ""
    if " at " in title and not company:
        role, _, org = title.partition(" at ")
        return role.strip(), org.strip()
    return title, company


def clean_image_url(url: Optional[str]) -> Optional[str]:
    if not url:
        return None
    url = url.strip()
    if url.startswith("data:image") or "ghost" in url or not url.startswith("http"):
        return None
    return url


def _pick_name(raw: dict) -> tuple[str, str]:
    """Best (name, href) pair from a raw card, following the same fallbacks a reader would."""
    name = clean_name_text(raw.get("name", ""))
    href = raw.get("href") or ""
    if is_valid_name(name) and href:
        return name, href

    span_name = clean_name_text(raw.get("span_name", ""))
    if is_valid_name(span_name):
        return span_name, raw.get("span_href") or href

    for link in raw.get("links") or []:
        text = clean_name_text(link.get("text", ""))
        if is_valid_name(text) and len(text.split()) >= 2 and link.get("href"):
            return text, link["href"]

    return name, href


def build_profile(raw: dict, source: ProfileSource, page_index: int = 1) -> Optional[Profile]:
    """Validated Profile from one raw card, or None when the card is unusable."""
    name, href = _pick_name(raw)
    if not is_valid_name(name) or not href:
        return None

    lead_url = None
    public_href = raw.get("public_href") or ""
    if "/sales/" in href:
        lead_url = clean_lead_url(href)
        canonical_url = canonicalize_url(public_href) if public_href else canonicalize_url(href)
    else:
        canonical_url = canonicalize_url(href)

    if not is_profile_url(canonical_url):
        return None

    title, company = split_headline(raw.get("title", ""), raw.get("company", ""))
    location = " ".join((raw.get("location") or "").split())

    try:
        return Profile(
            name=name,
            canonical_url=canonical_url,
            lead_url=lead_url,
            title=title,
            company=company,
            location=location,
            profile_image_url=clean_image_url(raw.get("image")),
            source=source,
            page_index=page_index,
        )
    except ValidationError as e:
        logger.debug(f"Discarded card {name!r}: {e}")
        return None
