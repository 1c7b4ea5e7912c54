import json
import os

from lookout.layers.action.executor import StepResult
from lookout.layers.intelligence.brains.base import ActionDecision, ExtractionDecision
from lookout.layers.sense.dom_mapper import FlattenedChunk
from lookout.reporters.flight_recorder import FlightRecorder


def test_full_run_is_written_out(tmp_path):
    recorder = FlightRecorder(output_dir=str(tmp_path), run_name="act_run")
    recorder.log_start("act", "click <Sign in>", "https://example.com")
    recorder.log_flatten(1, FlattenedChunk(text="0:<button>Sign in</button>\n", addresses={0: "/html/body/button"},
                                           chunk=0, total_chunks=2))
    recorder.log_decision(1, ActionDecision(index=0, method="click", step="submit"))
    recorder.save_screenshot("pass_1", b"\x89PNG")
    recorder.log_action_result(1, StepResult(
        success=True, operation="click", address="/html/body/button",
        url_before="https://example.com", url_after="https://example.com/home", duration_ms=12.5,
    ))
    recorder.log_verification(1, True)
    recorder.log_outcome(True, "Action completed successfully")

    report_path = recorder.generate_report()

    assert report_path == os.path.join(str(tmp_path), "act_run", "report.html")
    with open(report_path, encoding="utf-8") as f:
        html = f.read()
    assert "click &lt;Sign in&gt;" in html
    assert "screenshots/pass_1.png" in html

    with open(os.path.join(str(tmp_path), "act_run", "flight_record.json"), encoding="utf-8") as f:
        record = json.load(f)
    assert record["metadata"]["success"] is True
    assert record["metadata"]["total_steps"] == 1
    assert [e["event_type"] for e in record["entries"]] == [
        "info", "flatten", "decision", "action", "verification", "outcome",
    ]
    assert record["entries"][2]["screenshot_path"].endswith("pass_1.png")


def test_missing_decision_and_empty_screenshot(tmp_path):
    recorder = FlightRecorder(output_dir=str(tmp_path), run_name="empty")
    recorder.log_decision(3, None)
    assert recorder.save_screenshot("nothing", b"") is None
    assert recorder.entries[0].message == "No decision for this chunk"


def test_extraction_and_errors(tmp_path):
    recorder = FlightRecorder(output_dir=str(tmp_path), run_name="extract")
    recorder.log_extraction(1, ExtractionDecision(result={"a": 1}, progress="half way"))
    recorder.log_error("Extraction failed", ValueError("bad"))
    data = recorder.to_dict()
    assert data["entries"][0]["data"]["result"] == {"a": 1}
    assert data["entries"][1]["data"]["exception"] == "bad"
