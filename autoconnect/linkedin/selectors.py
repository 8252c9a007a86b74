"""
LinkedIn selector tables.

SELECTOR STRATEGY (LinkedIn changes its DOM frequently):
  Each table is an ordered list, newest layout first. Supporting a new layout
  means adding an entry here, never a new branch in the automation code.
  ARIA attributes before text matches, CSS class names last.
"""
from dataclasses import dataclass

from autoconnect.linkedin.probe import Candidate

# --- Profile page: action controls ---

ACTION_MENU = [
    Candidate("main button[aria-label*='More actions' i]"),
    Candidate("main button[aria-label='More' i]"),
    Candidate("button[aria-label*='More actions for' i]"),
    Candidate("button[data-control-name='profile_more_actions']"),
    Candidate("main .artdeco-dropdown__trigger", text=r"more"),
    # Sales Navigator lead page
    Candidate("button[aria-label*='Open actions overflow menu' i]"),
    Candidate("button[aria-label*='more options' i]"),
    # Profiles where Connect is a primary button and there is no overflow menu
    Candidate("main button[aria-label*='to connect' i]"),
]

CONNECT_PRIMARY = [
    Candidate("main button[aria-label*='to connect' i]"),
    Candidate("main button.pvs-profile-actions__action", text=r"^connect$"),
    Candidate("main button[data-control-name='connect']"),
    Candidate("main button", text=r"^connect$"),
]

# Inside the opened overflow menu
CONNECT_IN_MENU = [
    Candidate("[role='menu'] [role='button'][aria-label*='to connect' i]"),
    Candidate("[role='menuitem']", text=r"^connect$"),
    Candidate(".artdeco-dropdown__content [aria-label*='connect' i]"),
    Candidate("button[data-control-name='connect_with_message']"),
    Candidate("button[data-control-name='invite']"),
]

# Menu items that expose the public /in/ profile URL
COPY_PROFILE_LINK = [
    Candidate("a[data-control-name='copy_profile_url']"),
    Candidate("a[aria-label*='Copy profile URL' i]"),
    Candidate("a[aria-label*='View LinkedIn profile' i]"),
    Candidate("[role='menu'] a[href*='linkedin.com/in/']"),
    Candidate(".artdeco-dropdown__content a[href*='/in/']"),
]

# --- Connect dialog ---

ADD_NOTE = [
    Candidate("div[role='dialog'] button[aria-label='Add a note']"),
    Candidate("div[role='dialog'] button", text=r"add a note"),
    Candidate("button.artdeco-button--secondary", text=r"add a note"),
]

NOTE_INPUT = [
    Candidate("div[role='dialog'] textarea[name='message']"),
    Candidate("textarea#custom-message"),
    Candidate("textarea[id*='custom-message']"),
    Candidate(".connect-button-send-invite__custom-message-box textarea"),
    Candidate(".send-invite__custom-message textarea"),
    Candidate("div[role='dialog'] textarea"),
    # Sales Navigator / messaging composers
    Candidate("div[role='textbox'][contenteditable='true'][aria-label*='message' i]"),
]

SEND_INVITATION = [
    Candidate("div[role='dialog'] button[aria-label='Send invitation']"),
    Candidate("button[aria-label*='Send invitation' i]"),
    Candidate(".send-invite__actions button[aria-label*='Send' i]"),
    Candidate("div[role='dialog'] button", text=r"^send$"),
]

# Any one of these after clicking Send means the invitation went out
SEND_SUCCESS = [
    Candidate(".artdeco-toast-item", text=r"invitation sent|request sent"),
    Candidate("[role='alert']", text=r"invitation sent|request sent"),
    Candidate("main button[aria-label*='Pending' i]"),
    Candidate("main button", text=r"^pending$"),
]

SEND_ERROR = [
    Candidate(".artdeco-toast-item--error"),
    Candidate("[role='alert']", text=r"couldn.t send|try again|limit|something went wrong"),
    Candidate("div[role='dialog']", text=r"weekly invitation limit|reached the limit"),
]

# Presence of the compose control means the dialog is still open
COMPOSE_OPEN = [
    Candidate("div[role='dialog'] textarea"),
    Candidate("div[role='dialog'] button[aria-label*='Send' i]"),
]

SECURITY_CHALLENGE = [
    Candidate("h1", text=r"verify.*identity|security.*verification|let.s do a quick security check"),
    Candidate("main", text=r"unusual.*activity"),
]

# --- Canonical identity signals in the page head ---

CANONICAL_LINK_JS = """() => {
    const out = [];
    const canonical = document.querySelector('link[rel="canonical"]');
    if (canonical && canonical.href) out.push(canonical.href);
    const og = document.querySelector('meta[property="og:url"]');
    if (og && og.content) out.push(og.content);
    return out;
}"""

# --- Search results: pagination ---

NEXT_PAGE = [
    Candidate("button[aria-label='Next']"),
    Candidate("button[aria-label='Next page']"),
    Candidate("button.artdeco-pagination__button--next"),
    Candidate("button[data-test-pagination-page-btn='next']"),
    Candidate("button", text=r"^next$"),
]


def page_button_candidates(page_number: int) -> list[Candidate]:
    """Numbered pagination buttons for ``page_number``."""
    return [
        Candidate(f"button[aria-label='Page {page_number}']"),
        Candidate(f".artdeco-pagination__button[aria-label='Page {page_number}']"),
        Candidate(f"button[data-test-pagination-page-btn='{page_number}']"),
        Candidate(".artdeco-pagination li button", text=rf"^{page_number}$"),
    ]


CURRENT_PAGE_JS = """() => {
    const active = document.querySelector(
        'button[aria-current="true"] span, .artdeco-pagination__indicator--number.active span, ' +
        'li.active button span'
    );
    return active ? active.textContent.trim() : null;
}"""


# --- Search results: profile cards ---

@dataclass(frozen=True)
class CardLayout:
    """Where to find each profile field inside a result card, in priority order."""

    source: str
    containers: tuple
    name_links: tuple
    name_spans: tuple
    titles: tuple
    locations: tuple
    images: tuple
    link_pattern: str = "/in/"


_NAME_SPANS = (
    "span[aria-hidden='true']",
    "[data-anonymize='person-name'] span",
    ".entity-result__title-text span",
    ".artdeco-entity-lockup__title span",
    "span.t-16",
    "span.t-bold",
)

SEARCH_LAYOUT = CardLayout(
    source="search-page",
    containers=(
        "li[data-reusable-search-result]",
        ".reusable-search__result-container",
        "[data-chameleon-result-urn]",
        ".entity-result",
        ".search-result",
    ),
    name_links=(
        ".entity-result__title-text a",
        "a[data-test-app-aware-link][href*='/in/']",
        ".search-result__result-link",
        "a[href*='/in/']",
    ),
    name_spans=_NAME_SPANS,
    titles=(
        ".entity-result__primary-subtitle",
        "[data-anonymize='headline']",
        ".t-14.t-black.t-normal",
    ),
    locations=(
        ".entity-result__secondary-subtitle",
        "[data-anonymize='location']",
        ".t-14.t-normal:not(.t-black)",
    ),
    images=(
        ".entity-result__image img",
        ".presence-entity__image img",
        "img[alt*='profile' i]",
        "img",
    ),
)

NETWORK_LAYOUT = CardLayout(
    source="network-page",
    containers=(
        ".discover-entity-type-card",
        ".mn-connection-card",
        ".mn-person-card",
        "li.artdeco-card",
    ),
    name_links=(
        ".discover-entity-type-card__link",
        ".mn-person-card__link",
        ".artdeco-entity-lockup__title a",
        "a[href*='/in/']",
    ),
    name_spans=_NAME_SPANS,
    titles=(
        ".discover-person-card__occupation",
        ".mn-connection-card__occupation",
        ".artdeco-entity-lockup__subtitle",
    ),
    locations=(".artdeco-entity-lockup__caption",),
    images=(
        ".discover-entity-type-card__image img",
        ".mn-person-card__picture img",
        ".artdeco-entity-lockup__image img",
        "img",
    ),
)

LEAD_PLATFORM_LAYOUT = CardLayout(
    source="lead-platform",
    containers=(
        "li[data-test-result-item]",
        "[data-x-search-result='LEAD']",
        ".artdeco-entity-lockup",
        ".search-results__result-item",
        ".result-lockup",
    ),
    name_links=(
        "[data-anonymize='person-name']",
        ".artdeco-entity-lockup__title a",
        ".result-lockup__name a",
        "a[href*='/sales/lead/']",
        "a[href*='/in/']",
    ),
    name_spans=_NAME_SPANS,
    titles=(
        "[data-anonymize='title']",
        ".artdeco-entity-lockup__subtitle",
        ".result-lockup__highlight-keyword",
    ),
    locations=(
        "[data-anonymize='location']",
        ".artdeco-entity-lockup__caption",
        ".result-lockup__misc-item",
    ),
    images=(
        ".artdeco-entity-lockup__image img",
        ".result-lockup__image img",
        "img",
    ),
    link_pattern="/sales/lead/",
)

# Used only when none of the layouts above matched anything
ALTERNATIVE_LAYOUT = CardLayout(
    source="alternative-extraction",
    containers=(
        ".search-results-container .result-card",
        ".search-results .search-result__wrapper",
        ".artdeco-list .artdeco-list__item",
        ".pvs-list .pvs-list__item",
    ),
    name_links=("a[href*='/in/']", ".app-aware-link"),
    name_spans=_NAME_SPANS,
    titles=(".t-14.t-normal", ".artdeco-entity-lockup__subtitle"),
    locations=(".t-12.t-black--light", ".artdeco-entity-lockup__caption"),
    images=("img",),
)

# Cap on cards taken from the alternative pass per scan
ALTERNATIVE_LIMIT = 10


def layout_for_url(url: str) -> CardLayout:
    url = url.lower()
    if "/sales/" in url:
        return LEAD_PLATFORM_LAYOUT
    if "/mynetwork/" in url:
        return NETWORK_LAYOUT
    return SEARCH_LAYOUT
