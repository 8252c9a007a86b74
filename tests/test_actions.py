from playwright.sync_api import Error as PlaywrightError

from autoconnect.linkedin.actions import ActionPrimitives, split_fragments
from autoconnect.workflow.timing import Pacer
from tests.fakes import FakeElement, FakePage


def make_actions(page=None):
    sleeps = []
    actions = ActionPrimitives(page or FakePage(), Pacer(sleep=sleeps.append), settle_delay=0.5)
    return actions, sleeps


class BrokenElement(FakeElement):
    def evaluate(self, script, arg=None):
        raise PlaywrightError("Target closed")


class UndispatchableElement(FakeElement):
    def dispatch_event(self, event, timeout=None):
        raise PlaywrightError("element detached")


def test_split_fragments_rejoin_to_original():
    text = "  Hi Jane,\nlovely to  meet you. "
    assert "".join(split_fragments(text)) == text
    assert split_fragments("Hi there") == ["Hi ", "there"]
    assert split_fragments("abc", unit="char") == ["a", "b", "c"]
    assert split_fragments("") == []
    assert split_fragments("   ") == ["   "]


def test_click_settles_after_native_click():
    actions, sleeps = make_actions()
    button = FakeElement()

    assert actions.click_when_ready(button) is True
    assert button.clicks == 1
    assert button.dispatched == 0
    assert sleeps == [0.5]


def test_click_falls_back_to_synthetic_event():
    actions, sleeps = make_actions()
    button = FakeElement(click_error=True)

    assert actions.click_when_ready(button, settle=2.0) is True
    assert button.dispatched == 1
    assert sleeps == [2.0]


def test_click_reports_failure_when_both_paths_fail():
    actions, sleeps = make_actions()

    assert actions.click_when_ready(UndispatchableElement(click_error=True)) is False
    assert sleeps == []


def test_typing_appends_word_by_word():
    actions, sleeps = make_actions()
    field = FakeElement()
    field.value = "stale draft"

    assert actions.type_with_human_delay(field, "Hello Jane, nice to meet you", delay=0.2) is True
    assert field.value == "Hello Jane, nice to meet you"
    # One pause between each pair of fragments
    assert sleeps == [0.2] * 5


def test_typing_into_contenteditable():
    actions, _ = make_actions()
    composer = FakeElement(editable=True)

    assert actions.type_with_human_delay(composer, "Hi there", delay=0) is True
    assert composer.inner_text() == "Hi there"


def test_typing_reports_mismatch():
    class LossyElement(FakeElement):
        def evaluate(self, script, arg=None):
            if arg:
                self.value += arg[:1]
                return None
            return super().evaluate(script, arg)

    actions, _ = make_actions()
    assert actions.type_with_human_delay(LossyElement(), "Hello Jane", delay=0) is False


def test_typing_reports_playwright_errors():
    actions, _ = make_actions()
    assert actions.type_with_human_delay(BrokenElement(), "Hello", delay=0) is False


def test_wait_for_document_settled():
    page = FakePage()
    page.ready_states = ["loading", "interactive", "complete"]
    actions, sleeps = make_actions(page)

    assert actions.wait_for_document_settled(timeout=2.0, poll=0.5) is True
    assert sleeps == [0.5, 0.5]


def test_wait_for_document_settled_times_out():
    page = FakePage()
    page.ready_states = ["loading"] * 10
    actions, sleeps = make_actions(page)

    assert actions.wait_for_document_settled(timeout=1.0, poll=0.25) is False
    assert sleeps == [0.25] * 3


def test_press_escape():
    page = FakePage()
    actions, _ = make_actions(page)
    actions.press_escape()
    assert page.keyboard.pressed == ["Escape"]
