import json
import os
import threading
from unittest.mock import MagicMock, patch

import pytest
from pydantic import BaseModel

from fakes import ScriptedBrain, tall_page
from lookout import LookoutConfig, LookoutOrchestrator
from lookout.core.errors import DomUnavailableError
from lookout.core.orchestrator import get_id
from lookout.layers.intelligence.brains.base import ActionDecision, ExtractionDecision
from lookout.layers.intelligence.brains.cloud_brain import CloudBrain
from lookout.layers.intelligence.decision_engine import DecisionEngine


def make_agent(page, brain, **overrides):
    overrides.setdefault("settle_delay", 0)
    overrides.setdefault("typing_delay", (0, 0))
    return LookoutOrchestrator(page=page, engine=DecisionEngine(brain=brain), **overrides)


class Heading(BaseModel):
    heading: str


def test_unknown_option_is_rejected():
    with pytest.raises(TypeError):
        LookoutOrchestrator(not_an_option=True)


def test_config_defaults():
    config = LookoutConfig()
    assert config.use_vision == "fallback"
    assert config.max_steps == 50
    assert (config.viewport_width, config.viewport_height) == (1250, 800)


def test_goto_waits_for_page(login_page):
    agent = make_agent(login_page, ScriptedBrain())
    agent.goto("https://example.com/login")
    assert login_page.url == "https://example.com/login"
    assert ("wait_for_load",) in login_page.calls
    assert login_page.settle_count >= 1


def test_act_records_the_action(login_page):
    brain = ScriptedBrain(decisions=[ActionDecision(index=4, method="click", step="submit", completed=True)])
    agent = make_agent(login_page, brain, use_vision=False)

    result = agent.act("click sign in")

    assert result.success
    entry = agent.actions[get_id("click sign in")]
    assert entry["action"] == "click sign in"
    assert entry["result"] == result.message


def test_failed_act_records_none(login_page):
    agent = make_agent(login_page, ScriptedBrain(), use_vision=False)
    result = agent.act("click the missing thing")
    assert not result.success
    assert agent.actions[get_id("click the missing thing")]["result"] is None


def test_act_passes_cancel_through(login_page):
    cancel = threading.Event()
    cancel.set()
    brain = ScriptedBrain(decisions=[ActionDecision(index=4, method="click")])
    assert not make_agent(login_page, brain).act("click", cancel=cancel).success


def test_extract_with_model_validates():
    page = tall_page(sections=2)
    brain = ScriptedBrain(extractions=[ExtractionDecision(result={"heading": "Section 0"}, completed=True)])
    result = make_agent(page, brain).extract("the heading", Heading)

    assert result.success
    assert result.model == Heading(heading="Section 0")
    assert brain.extraction_calls


def test_extract_validation_failure():
    page = tall_page(sections=1)
    brain = ScriptedBrain(extractions=[ExtractionDecision(result={"other": 1}, completed=True)])
    result = make_agent(page, brain).extract("the heading", Heading)

    assert not result.success
    assert "validation" in result.message
    assert result.data == {"other": 1}


def test_extract_with_dict_schema():
    page = tall_page(sections=1)
    brain = ScriptedBrain(extractions=[ExtractionDecision(result={"n": 1})])
    result = make_agent(page, brain).extract("n", {"type": "object", "properties": {"n": {"type": "integer"}}})
    assert result.success
    assert result.data == {"n": 1}
    assert result.model is None


def test_extract_reports_missing_dom(login_page):
    def broken():
        raise DomUnavailableError("no body")

    login_page.snapshot = broken
    result = make_agent(login_page, ScriptedBrain()).extract("x", {"type": "object"})
    assert not result.success
    assert result.message == "Error extracting data: no body"


def test_extract_rejects_bad_schema(login_page):
    with pytest.raises(TypeError):
        make_agent(login_page, ScriptedBrain()).extract("x", ["not", "a", "schema"])


def test_observe_returns_address_and_registers_it(login_page):
    agent = make_agent(login_page, ScriptedBrain(observation=4))
    address = agent.observe("the sign in button")

    assert address == "/html/body/form/button"
    assert agent.observations[get_id("the sign in button")] == {
        "result": "/html/body/form/button",
        "observation": "the sign in button",
    }


def test_observe_none_and_bad_index(login_page):
    assert make_agent(login_page, ScriptedBrain(observation=None)).observe("nothing") is None
    assert make_agent(login_page, ScriptedBrain(observation=99)).observe("out of range") is None


def chatty_cloud_brain(reply):
    with patch.object(CloudBrain, "_init_client"):
        brain = CloudBrain(provider="openai", model="gpt-4o")
    brain.client = MagicMock()
    brain.client.chat.completions.create.return_value.choices = [MagicMock(message=MagicMock(content=reply))]
    return brain


def test_non_json_model_reply_is_a_failed_result(login_page):
    agent = make_agent(login_page, chatty_cloud_brain("Sorry, I cannot help with that."))

    result = agent.extract("the heading", {"type": "object"})
    assert not result.success
    assert result.message.startswith("Error extracting data: extraction failed")

    assert agent.observe("the sign in button") is None


def test_ask_and_flatten(login_page):
    agent = make_agent(login_page, ScriptedBrain())
    assert agent.ask("what?") == "answer: what?"
    assert agent.flatten().text.startswith('0:<a href="/reset">')
    assert agent.flatten(0).addresses == agent.flatten_all().addresses
    assert json.loads(agent.registry()) == {"observations": {}, "actions": {}}


def test_record_writes_report(login_page, tmp_path):
    brain = ScriptedBrain(decisions=[ActionDecision(index=4, method="click", completed=True)])
    agent = make_agent(login_page, brain, use_vision=False, record=True, report_dir=str(tmp_path))
    agent.act("click sign in")

    assert agent.last_report_path is not None
    assert os.path.exists(agent.last_report_path)
    run_dir = os.path.dirname(agent.last_report_path)
    with open(os.path.join(run_dir, "flight_record.json"), encoding="utf-8") as f:
        record = json.load(f)
    assert record["metadata"]["operation"] == "act"
    assert record["metadata"]["success"] is True


def test_context_manager_closes_driver(login_page):
    with make_agent(login_page, ScriptedBrain()) as agent:
        agent._driver = driver = type("Driver", (), {"quit": lambda self: setattr(self, "closed", True)})()
    assert driver.closed
    assert agent._driver is None
