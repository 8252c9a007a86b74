import re
from typing import Optional
from urllib.parse import parse_qs, urlencode, urlsplit, urlunsplit

LINKEDIN_ORIGIN = "https://www.linkedin.com"

PUBLIC_PROFILE_PATH = re.compile(r"^/in/[^/?#\s]+$")
LEAD_PATH = re.compile(r"^/sales/(lead|people)/[^/?#\s]+$")


def absolutize(href: str) -> str:
    href = (href or "").strip()
    if href.startswith("//"):
        return "https:" + href
    if href.startswith("/"):
        return LINKEDIN_ORIGIN + href
    return href


def canonicalize_url(href: str) -> str:
    """
    Normalize a LinkedIn profile or lead URL into its de-duplication key.

    Makes the URL absolute, drops query and fragment, trailing slashes,
    locale suffixes (/in/jane/de) and Sales Navigator search context
    (everything after the first comma of a lead id).
    Returns "" for anything that is not a linkedin.com URL.
    """
    href = absolutize(href)
    if not href:
        return ""
    parts = urlsplit(href)
    host = parts.netloc.lower()
    if not (host == "linkedin.com" or host.endswith(".linkedin.com")):
        return ""

    segments = [s for s in parts.path.split("/") if s]
    if len(segments) >= 2 and segments[0] == "in":
        path = f"/in/{segments[1].lower()}"
    elif len(segments) >= 3 and segments[0] == "sales" and segments[1] in ("lead", "people"):
        path = f"/sales/{segments[1]}/{segments[2].split(',')[0]}"
    else:
        path = "/" + "/".join(segments)

    return f"{LINKEDIN_ORIGIN}{path}"


def clean_lead_url(href: str) -> str:
    """Absolute lead URL with query stripped, keeping the full lead id for navigation."""
    href = absolutize(href)
    if not href:
        return ""
    parts = urlsplit(href)
    return urlunsplit((parts.scheme or "https", parts.netloc, parts.path.rstrip("/"), "", ""))


def _path(url: str) -> str:
    parts = urlsplit(url or "")
    if parts.netloc.lower() != "www.linkedin.com":
        return ""
    return parts.path


def is_public_profile_url(url: str) -> bool:
    return bool(PUBLIC_PROFILE_PATH.match(_path(url)))


def is_profile_url(url: str) -> bool:
    """True for canonical /in/ profile URLs and Sales Navigator lead URLs."""
    path = _path(url)
    return bool(PUBLIC_PROFILE_PATH.match(path) or LEAD_PATH.match(path))


def same_profile(a: str, b: str) -> bool:
    ca, cb = canonicalize_url(a), canonicalize_url(b)
    return bool(ca) and ca == cb


def with_page(url: str, page_number: int) -> str:
    """Return ``url`` with its ``page`` query parameter set to ``page_number``."""
    parts = urlsplit(url)
    query = parse_qs(parts.query, keep_blank_values=True)
    query["page"] = [str(page_number)]
    return urlunsplit(
        (parts.scheme, parts.netloc, parts.path, urlencode(query, doseq=True), parts.fragment)
    )


def page_param(url: str) -> Optional[int]:
    values = parse_qs(urlsplit(url or "").query).get("page")
    if not values:
        return None
    try:
        return int(values[0])
    except ValueError:
        return None
