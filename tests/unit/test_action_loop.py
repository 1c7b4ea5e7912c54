import threading

import pytest

from fakes import FakePage, ScriptedBrain, el, tall_page
from lookout.core.action_loop import (
    MAX_STEPS_MESSAGE,
    NOT_FOUND_MESSAGE,
    SCROLLED_STEP,
    ActionLoop,
    append_step,
)
from lookout.core.errors import DomUnavailableError
from lookout.layers.action.executor import ActionExecutor
from lookout.layers.intelligence.brains.base import ActionDecision
from lookout.layers.intelligence.decision_engine import DecisionEngine
from lookout.layers.sense.dom_mapper import DOMMapper
from lookout.layers.sense.scroller import PageScroller
from lookout.reporters.flight_recorder import FlightRecorder


def make_loop(page, brain, **kwargs):
    mapper = DOMMapper(page, scroller=PageScroller(page, settle_delay=0))
    executor = ActionExecutor(page, sleep=lambda s: None)
    return ActionLoop(page, mapper, executor, DecisionEngine(brain=brain), **kwargs)


def click(index, step="click it", completed=True, **kwargs):
    return ActionDecision(index=index, method="click", step=step, rationale="best match", completed=completed, **kwargs)


def test_single_chunk_click_succeeds(login_page):
    brain = ScriptedBrain(decisions=[click(4, step="click sign in")], verdicts=[True])
    result = make_loop(login_page, brain).run("click sign in", use_vision=False)

    assert result.success
    assert result.message == (
        "Action completed successfully: click sign in\n"
        'Element: <button class="btn primary">Sign in</button>'
    )
    assert result.action == "click sign in"
    assert ("click", "/html/body/form/button") in login_page.calls
    assert "## Step: click sign in\n" in result.steps
    assert "  Reasoning: best match\n" in result.steps
    # Vision verification grabs the whole page.
    assert brain.verify_calls[0]["screenshot"] == b"\x89PNG-full"
    assert brain.action_calls[0]["screenshot"] is None
    assert login_page.settle_count > 0


def test_all_chunks_checked_without_a_decision():
    page = tall_page(sections=3)
    brain = ScriptedBrain()
    result = make_loop(page, brain).run("click the missing thing", use_vision=False)

    assert not result.success
    assert result.message == NOT_FOUND_MESSAGE
    assert len(brain.action_calls) == 3
    assert result.steps.count(SCROLLED_STEP) == 2
    texts = [call["text"] for call in brain.action_calls]
    assert "Section 0" in texts[0]
    assert "Section 1" in texts[1]
    assert "Section 2" in texts[2]


def test_vision_fallback_rescans_with_screenshots():
    page = tall_page(sections=3)
    brain = ScriptedBrain(decisions=[None, None, None, click(0)], verdicts=[True])
    result = make_loop(page, brain).run("click section zero", use_vision="fallback")

    assert result.success
    assert [call["screenshot"] for call in brain.action_calls] == [None, None, None, b"\x89PNG-viewport"]
    # The rescan starts from the top.
    assert 0 in page.scrolls[3:]
    assert "Section 0" in brain.action_calls[3]["text"]


def test_verifier_rejection_keeps_going():
    page = FakePage([el("button", "Next", attrs={"id": "next"}, y=10)])
    brain = ScriptedBrain(
        decisions=[click(0, step="first"), click(0, step="second")],
        verdicts=[False, True],
    )
    result = make_loop(page, brain).run("click next twice", use_vision=False)

    assert result.success
    assert len(brain.verify_calls) == 2
    assert result.message.startswith("Action completed successfully: ## Step: first\n")
    assert result.message.endswith("second\nElement: <button id=\"next\">Next</button>")
    assert page.calls.count(("click", "//*[@id='next']")) == 2


def test_multi_step_goal_applies_each_step(login_page):
    brain = ScriptedBrain(decisions=[
        ActionDecision(index=2, method="fill", args=["me@x.io"], step="fill email", rationale="email", completed=False),
        click(4, step="submit"),
    ])
    result = make_loop(login_page, brain).run("log in as me@x.io", use_vision=False)

    assert result.success
    assert "".join(login_page.typed) == "me@x.io"
    assert result.steps.count("## Step:") == 2
    # Only the completing step asks the verifier.
    assert len(brain.verify_calls) == 1
    assert "fill email" in brain.action_calls[1]["steps"]


def test_url_change_is_noted_in_steps(login_page):
    login_page.on_click["/html/body/form/button"] = lambda page: setattr(page, "url", "https://example.com/home")
    brain = ScriptedBrain(decisions=[click(4, step="submit")])
    result = make_loop(login_page, brain).run("submit", use_vision=False)

    assert "Result (Important): Page url changed to https://example.com/home after this step\n\n" in result.steps


def test_brain_without_vision_forces_text_mode(login_page):
    brain = ScriptedBrain(decisions=[click(4)], supports_vision=False)
    result = make_loop(login_page, brain, verifier_use_vision=True).run("click sign in", use_vision=True)

    assert result.success
    assert brain.action_calls[0]["screenshot"] is None
    assert brain.verify_calls[0]["screenshot"] is None
    assert "Sign in" in brain.verify_calls[0]["text"]
    assert login_page.screenshots == []


def test_max_steps_bounds_the_loop(login_page):
    brain = ScriptedBrain(decisions=[click(4, completed=False) for _ in range(10)])
    result = make_loop(login_page, brain, max_steps=3).run("click forever", use_vision=False)

    assert not result.success
    assert result.message == MAX_STEPS_MESSAGE
    assert len(brain.action_calls) == 3


def test_cancel_stops_before_next_pass(login_page):
    cancel = threading.Event()
    cancel.set()
    brain = ScriptedBrain(decisions=[click(4)])
    result = make_loop(login_page, brain).run("click sign in", cancel=cancel)

    assert not result.success
    assert "cancelled" in result.message
    assert brain.action_calls == []


def test_invalid_method_is_reported(login_page):
    brain = ScriptedBrain(decisions=[ActionDecision(index=4, method="teleport", step="x")])
    result = make_loop(login_page, brain).run("teleport", use_vision=False)

    assert not result.success
    assert result.message.startswith("Error performing action: chosen method 'teleport' is invalid")


def test_missing_dom_is_reported_not_raised(login_page):
    def broken():
        raise DomUnavailableError("error selecting DOM that doesn't exist")

    login_page.snapshot = broken
    result = make_loop(login_page, ScriptedBrain()).run("click", use_vision=False)

    assert not result.success
    assert result.message == "Error performing action: error selecting DOM that doesn't exist"


def test_recorder_captures_the_run(login_page, tmp_path):
    recorder = FlightRecorder(output_dir=str(tmp_path), run_name="act")
    brain = ScriptedBrain(decisions=[click(4)])
    make_loop(login_page, brain, recorder=recorder).run("click sign in", use_vision=False)

    kinds = [e.event_type for e in recorder.entries]
    assert kinds[:3] == ["flatten", "decision", "action"]
    assert kinds[-1] == "outcome"
    assert recorder.metadata["success"] is True


@pytest.mark.parametrize("steps,expected", [
    ("", "entry"),
    ("a\n", "a\nentry"),
    ("a", "a\nentry"),
])
def test_append_step_starts_on_new_line(steps, expected):
    assert append_step(steps, "entry") == expected
