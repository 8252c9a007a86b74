"""Hand-written stand-ins for the browser page and the engine collaborators."""
from typing import Callable, Optional

from playwright.sync_api import Error as PlaywrightError

from autoconnect.linkedin.profile_page import NavigationResult, SendVerdict
from autoconnect.linkedin.urls import same_profile
from autoconnect.services.generator import GeneratedMessage
from autoconnect.services.record_store import StoredIds
from autoconnect.workflow.errors import GenerationError
from autoconnect.workflow.state import Profile, ProfileSource


class Crash(BaseException):
    """Simulates the process dying: nothing in the engine catches it."""


def make_profile(slug: str, name: Optional[str] = None, **fields) -> Profile:
    return Profile(
        name=name or slug.replace("-", " ").title(),
        canonical_url=f"https://www.linkedin.com/in/{slug}",
        **fields,
    )


# --- Playwright surface -------------------------------------------------


class FakeElement:
    """Minimal Locator: text, visibility, aria state and an editable value."""

    def __init__(
        self,
        text: str = "",
        visible: bool = True,
        enabled: bool = True,
        aria_hidden: bool = False,
        aria_disabled: bool = False,
        aria_label: str = "",
        parent_text: str = "",
        editable: bool = False,
        href: Optional[str] = None,
        click_error: bool = False,
    ):
        self.text = text
        self.visible = visible
        self.enabled = enabled
        self.aria_hidden = aria_hidden
        self.aria_disabled = aria_disabled
        self.aria_label = aria_label
        self.parent_text = parent_text
        self.editable = editable
        self.href = href
        self.click_error = click_error
        self.value = ""
        self.clicks = 0
        self.dispatched = 0

    def is_visible(self, timeout=None):
        return self.visible

    def is_enabled(self, timeout=None):
        return self.enabled

    def inner_text(self, timeout=None):
        return self.value if self.editable else self.text

    def input_value(self, timeout=None):
        return self.value

    def get_attribute(self, name, timeout=None):
        if name == "aria-label":
            return self.aria_label or None
        if name == "href":
            return self.href
        return None

    def evaluate(self, script, arg=None):
        if "aria-hidden" in script:
            return {"hidden": self.aria_hidden, "disabled": self.aria_disabled}
        if "parentElement" in script:
            return self.parent_text
        if "isContentEditable" in script:
            return self.editable
        # Append scripts
        self.value += arg or ""
        return None

    def scroll_into_view_if_needed(self, timeout=None):
        return None

    def click(self, timeout=None):
        if self.click_error:
            raise PlaywrightError("element is not clickable")
        self.clicks += 1

    def dispatch_event(self, event, timeout=None):
        self.dispatched += 1

    def fill(self, value, timeout=None):
        self.value = value


class FakeLocator:
    def __init__(self, elements: list):
        self.elements = elements

    def count(self):
        return len(self.elements)

    def nth(self, i):
        return self.elements[i]

    @property
    def first(self):
        return self.elements[0] if self.elements else FakeElement(visible=False)


class FakeKeyboard:
    def __init__(self):
        self.pressed = []

    def press(self, key):
        self.pressed.append(key)


class FakePage:
    """Selector -> elements map plus canned answers for page.evaluate."""

    def __init__(self, elements: Optional[dict] = None, url: str = "https://www.linkedin.com/feed/"):
        self.elements = elements if elements is not None else {}
        self.url = url
        self.evaluations: dict[str, object] = {}
        self.ready_states: list[str] = []
        self.keyboard = FakeKeyboard()
        self.gotos: list[str] = []
        self.locator_calls: list[str] = []

    def locator(self, selector):
        self.locator_calls.append(selector)
        return FakeLocator(self.elements.get(selector, []))

    def evaluate(self, script, arg=None):
        if "readyState" in script and self.ready_states:
            return self.ready_states.pop(0)
        for marker, answer in self.evaluations.items():
            if marker in script:
                return answer(arg) if callable(answer) else answer
        return None

    def goto(self, url, wait_until=None, timeout=None):
        self.gotos.append(url)
        self.url = url


# --- Search page driver ------------------------------------------------


def card(slug, name=None):
    return {
        "name": name or slug.replace("-", " ").title(),
        "href": f"https://www.linkedin.com/in/{slug}/?miniProfileUrn=x",
        "title": "Engineer at Acme",
    }


class FakeSearchPage:
    """Result pages keyed by number; navigation controls can be switched off."""

    def __init__(self, pages, number=1):
        self.pages = pages
        self.number = number
        self.url = f"https://www.linkedin.com/search/results/people/?page={number}"
        self.page = FakePage(url=self.url)
        self.page_links = True
        self.next_button = True
        self.direct_navigation = True
        self.scrolls = 0
        self.scans = 0
        self.mutations = 0
        self.on_scroll = None
        self.watching = 0

    def scan_cards(self):
        self.scans += 1
        return list(self.pages.get(self.number, [])), ProfileSource.SEARCH_PAGE

    def current_page_number(self):
        return self.number

    def watch_mutations(self):
        self.watching += 1

    def mutation_count(self):
        return self.mutations

    def scroll_down(self):
        self.scrolls += 1
        if self.on_scroll:
            self.on_scroll(self.scrolls)

    def wait_until_ready(self):
        return True

    def click_page(self, page_number):
        if self.page_links and page_number in self.pages:
            self.number = page_number
            return True
        return False

    def click_next(self):
        if self.next_button and self.number + 1 in self.pages:
            self.number += 1
            return True
        return False

    def open_page(self, page_number, base_url=None):
        if self.direct_navigation and page_number in self.pages:
            self.number = page_number
            return True
        return False


# --- Profile page driver ------------------------------------------------


class FakeProfilePage:
    """
    Scripted stand-in for ProfilePage.

    Every profile URL works unless listed in one of the failure sets. Hooks
    (``on_open``, ``on_click``, ...) run inside the corresponding call so
    tests can crash or pause the engine at an exact point.
    """

    def __init__(self):
        self.url = "https://www.linkedin.com/search/results/people/"
        self.opened: list[str] = []
        self.clicks: list[str] = []
        self.typed: list[tuple[str, str]] = []
        self.statuses: list[str] = []
        self.dismissed = 0

        self.no_menu: set[str] = set()
        self.no_input: set[str] = set()
        self.pending: set[str] = set()
        self.unresolved: set[str] = set()
        self.nav_failures: set[str] = set()
        self.login_wall = False
        self.challenge = False
        self.canonical: dict[str, str] = {}
        self.verdicts: dict[str, SendVerdict] = {}

        self.on_open: Optional[Callable[[str], None]] = None
        self.on_menu: Optional[Callable[[str], None]] = None
        self.on_type: Optional[Callable[[str], None]] = None
        self.on_click: Optional[Callable[[str], None]] = None
        self.on_input: Optional[Callable[[str], None]] = None

    def open(self, url):
        if self.on_open:
            self.on_open(url)
        self.opened.append(url)
        if self.login_wall:
            self.url = "https://www.linkedin.com/login"
            return NavigationResult.LOGIN_REQUIRED
        if url in self.nav_failures:
            return NavigationResult.FAILED
        self.url = url
        return NavigationResult.OK

    def is_showing(self, url):
        return same_profile(self.url, url)

    def wait_until_ready(self):
        return True

    def detect_security_challenge(self):
        return self.challenge

    def is_pending(self):
        return self.url in self.pending

    def find_action_menu(self):
        if self.on_menu:
            self.on_menu(self.url)
        return None if self.url in self.no_menu else "menu"

    def capture_canonical_url(self, menu):
        if self.url in self.unresolved:
            return None
        return self.canonical.get(self.url, self.url)

    def find_note_input(self, menu):
        if self.on_input:
            self.on_input(self.url)
        return None if self.url in self.no_input else "note-input"

    def type_note(self, handle, text, per_word_delay):
        self.typed.append((self.url, text))
        if self.on_type:
            self.on_type(self.url)
        return True

    def find_send_control(self):
        return "send"

    def click_send(self, handle):
        self.clicks.append(self.url)
        if self.on_click:
            self.on_click(self.url)
        return True

    def verify_sent(self, timeout, poll=0.5):
        return self.verdicts.get(self.url, SendVerdict.SENT)

    def dismiss_dialogs(self):
        self.dismissed += 1

    def show_status(self, text):
        self.statuses.append(text)


# --- Collaborators ------------------------------------------------------


class FakeGenerator:
    def __init__(self, fail: bool = False, error: Optional[BaseException] = None):
        self.fail = fail
        self.error = error
        self.calls: list[tuple[str, str]] = []

    def generate(self, prompt, canonical_url, profile=None):
        self.calls.append((prompt, canonical_url))
        if self.error is not None:
            raise self.error
        if self.fail:
            raise GenerationError("model unavailable")
        first = profile.first_name if profile else "there"
        return GeneratedMessage(message=f"Hello {first}, {prompt}", interests=["testing"])


class FakeRecordStore:
    def __init__(self, fail: bool = False):
        self.fail = fail
        self.calls = []
        self.after_record: Optional[Callable[[], None]] = None

    def record(self, request):
        self.calls.append(request)
        if self.after_record:
            self.after_record()
        if self.fail:
            raise RuntimeError("database is locked")
        n = len(self.calls)
        return StoredIds(remote_profile_id=n, connection_request_id=100 + n, message_id=200 + n, prompt_id=1)


def run_to_end(engine, limit: int = 50):
    """Call resume() the way the worker does; returns the outcomes seen."""
    outcomes = []
    for _ in range(limit):
        outcome = engine.resume()
        outcomes.append(outcome)
        if not outcome.should_continue:
            break
    return outcomes
