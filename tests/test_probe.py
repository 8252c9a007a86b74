from autoconnect.linkedin.probe import Candidate, Constraints, PageProbe, accessible_text
from autoconnect.workflow.timing import RetryPolicy
from tests.fakes import FakeElement, FakePage


def make_probe(elements, attempts=3, sleeps=None):
    page = FakePage(elements)
    sleeps = [] if sleeps is None else sleeps
    probe = PageProbe(page, RetryPolicy(max_attempts=attempts, interval=0.1), sleep=sleeps.append)
    return probe, page, sleeps


def test_first_matching_candidate_wins():
    old = FakeElement(text="More")
    new = FakeElement(text="More")
    probe, _, _ = make_probe({"button.new": [new], "button.old": [old]})

    found = probe.locate([Candidate("button.new"), Candidate("button.old")])
    assert found is new


def test_falls_through_to_later_candidates():
    old = FakeElement(text="More")
    probe, _, sleeps = make_probe({"button.old": [old]})

    assert probe.locate([Candidate("button.new"), Candidate("button.old")]) is old
    assert sleeps == []


def test_hidden_and_disabled_elements_are_skipped():
    invisible = FakeElement(text="Send", visible=False)
    aria_hidden = FakeElement(text="Send", aria_hidden=True)
    aria_disabled = FakeElement(text="Send", aria_disabled=True)
    disabled = FakeElement(text="Send", enabled=False)
    good = FakeElement(text="Send")
    probe, _, _ = make_probe({"button": [invisible, aria_hidden, aria_disabled, disabled, good]})

    assert probe.find_now([Candidate("button")]) is good


def test_constraints_can_allow_disabled_or_hidden():
    disabled = FakeElement(text="Send", enabled=False)
    probe, _, _ = make_probe({"button": [disabled]})

    assert probe.find_now([Candidate("button")]) is None
    assert probe.find_now([Candidate("button")], Constraints(enabled=False)) is disabled

    invisible = FakeElement(visible=False)
    probe, _, _ = make_probe({"div": [invisible]})
    assert probe.find_now([Candidate("div")], Constraints(visible=False, enabled=False)) is invisible


def test_text_matches_inner_text_or_aria_label():
    icon = FakeElement(text="", aria_label="More actions")
    labelled = FakeElement(text="Connect")
    probe, _, _ = make_probe({"button": [labelled, icon]})

    assert probe.find_now([Candidate("button", text=r"^more")]) is icon
    assert probe.find_now([Candidate("button", text=r"connect")]) is labelled
    assert probe.find_now([Candidate("button", text=r"follow")]) is None


def test_sibling_text_matches_parent():
    bare = FakeElement(parent_text="Message")
    wanted = FakeElement(parent_text="Add a note")
    probe, _, _ = make_probe({"button": [bare, wanted]})

    assert probe.find_now([Candidate("button", sibling_text="add a note")]) is wanted


def test_text_constraint_predicate():
    short = FakeElement(text="Hi")
    long = FakeElement(text="Hello there")
    probe, _, _ = make_probe({"p": [short, long]})

    found = probe.find_now([Candidate("p")], Constraints(text=lambda t: len(t) > 5))
    assert found is long


def test_retries_until_element_appears():
    elements = {}
    sleeps = []
    late = FakeElement(text="Send")

    def sleep(seconds):
        sleeps.append(seconds)
        if len(sleeps) == 2:
            elements["button"] = [late]

    page = FakePage(elements)
    probe = PageProbe(page, RetryPolicy(max_attempts=5, interval=0.1), sleep=sleep)

    assert probe.locate([Candidate("button")]) is late
    assert sleeps == [0.1, 0.1]


def test_miss_returns_none_after_all_attempts():
    probe, page, sleeps = make_probe({}, attempts=4)

    assert probe.locate([Candidate("button.a"), Candidate("button.b")]) is None
    assert sleeps == [0.1, 0.1, 0.1]
    # Every attempt re-queries the live page
    assert page.locator_calls.count("button.a") == 4


def test_per_call_policy_overrides_default():
    probe, _, sleeps = make_probe({}, attempts=10)

    assert probe.locate([Candidate("x")], policy=RetryPolicy(max_attempts=1)) is None
    assert sleeps == []


def test_anchored_text_matches_visible_text_despite_aria_label():
    connect = FakeElement(text="Connect", aria_label="Invite Jane Doe to connect")
    probe, _, _ = make_probe({"button": [connect]})

    assert probe.find_now([Candidate("button", text=r"^connect$")]) is connect


def test_anchored_text_matches_aria_label_of_icon_button():
    icon = FakeElement(text="", aria_label="Connect")
    probe, _, _ = make_probe({"button": [icon]})

    assert probe.find_now([Candidate("button", text=r"^connect$")]) is icon
    assert probe.find_now([Candidate("button", text=r"^follow$")]) is None


def test_accessible_text_joins_text_and_label():
    assert accessible_text(FakeElement(text=" Connect ", aria_label="Invite Jane")) == "Connect Invite Jane"
    assert accessible_text(FakeElement()) == ""


def test_retry_policy_jitter_stays_non_negative():
    policy = RetryPolicy(interval=0.1, jitter=0.5)
    assert all(policy.delay() >= 0 for _ in range(50))
