import csv
import io
import logging

from pydantic import ValidationError

from autoconnect.linkedin.urls import canonicalize_url, clean_lead_url
from autoconnect.workflow.state import Profile, ProfileSource

logger = logging.getLogger("autoconnect")

CSV_COLUMNS = ["Name", "Profile_URL", "Lead_URL", "Title", "Company", "Location", "Source"]


def read_profiles_csv(text: str) -> tuple[list[Profile], int]:
    """
    Parse an exported queue (or a hand-made lead list) into profiles.

    Returns (profiles, skipped). Rows without a name or a usable LinkedIn
    profile URL are skipped; duplicates by URL keep the first row.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")))
    profiles: list[Profile] = []
    seen: set[str] = set()
    skipped = 0

    for row in reader:
        name = (row.get("Name") or "").strip()
        url = (row.get("Profile_URL") or "").strip()
        lead_url = (row.get("Lead_URL") or "").strip()
        if not url and lead_url:
            url = lead_url

        canonical = canonicalize_url(url)
        try:
            source = ProfileSource((row.get("Source") or "").strip())
        except ValueError:
            source = ProfileSource.SEARCH_PAGE
        try:
            profile = Profile(
                name=name,
                canonical_url=canonical,
                lead_url=clean_lead_url(lead_url) if lead_url else None,
                title=row.get("Title") or "",
                company=row.get("Company") or "",
                location=row.get("Location") or "",
                source=source,
            )
        except ValidationError:
            skipped += 1
            continue

        if profile.canonical_url in seen:
            skipped += 1
            continue
        seen.add(profile.canonical_url)
        profiles.append(profile)

    logger.info(f"Read {len(profiles)} profiles from CSV ({skipped} skipped).")
    return profiles, skipped


def write_profiles_csv(profiles: list[Profile]) -> str:
    out = io.StringIO()
    writer = csv.DictWriter(out, fieldnames=CSV_COLUMNS)
    writer.writeheader()
    for p in profiles:
        writer.writerow({
            "Name": p.name,
            "Profile_URL": p.canonical_url,
            "Lead_URL": p.lead_url or "",
            "Title": p.title,
            "Company": p.company,
            "Location": p.location,
            "Source": p.source.value,
        })
    return out.getvalue()
