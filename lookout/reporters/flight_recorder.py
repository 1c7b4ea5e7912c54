"""
Flight Recorder - run log and report generation.

Captures what one act/extract/observe call saw and did: every flattening
pass, every decision, every applied step, verifier verdicts and the final
outcome. Written out as ``flight_record.json`` plus an HTML timeline.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING
from datetime import datetime
import html
import json
import os

if TYPE_CHECKING:
    from lookout.layers.action.executor import StepResult
    from lookout.layers.intelligence.brains.base import ActionDecision, ExtractionDecision
    from lookout.layers.sense.dom_mapper import FlattenedChunk


@dataclass
class LogEntry:
    """A single log entry in the flight record."""
    timestamp: datetime
    step: int
    event_type: str  # 'navigation', 'flatten', 'decision', 'action', 'verification', 'outcome', 'warning', 'error', 'info'
    message: str
    data: Dict[str, Any] = field(default_factory=dict)
    screenshot_path: Optional[str] = None


class FlightRecorder:
    """
    Records one top-level call.

    Example:
        >>> recorder = FlightRecorder(run_name="act_login")
        >>> recorder.log_navigation("https://example.com")
        >>> recorder.log_decision(0, decision)
        >>> report_path = recorder.generate_report()
    """

    # Flattened text kept per pass; the full text can be megabytes.
    TEXT_PREVIEW = 2000

    def __init__(
        self,
        output_dir: str = "./lookout_reports",
        run_name: Optional[str] = None,
    ):
        """
        Initialize the flight recorder.

        Args:
            output_dir: Directory for reports and screenshots
            run_name: Optional name for this run
        """
        self.output_dir = output_dir
        self.run_name = run_name or datetime.now().strftime("%Y%m%d_%H%M%S")
        self.entries: List[LogEntry] = []
        self.metadata: Dict[str, Any] = {
            "start_time": datetime.now().isoformat(),
            "run_name": self.run_name,
        }

        self.run_dir = os.path.join(output_dir, self.run_name)
        self.screenshots_dir = os.path.join(self.run_dir, "screenshots")
        os.makedirs(self.screenshots_dir, exist_ok=True)

    def _add(self, step: int, event_type: str, message: str, data: Optional[Dict[str, Any]] = None) -> LogEntry:
        entry = LogEntry(
            timestamp=datetime.now(),
            step=step,
            event_type=event_type,
            message=message,
            data=data or {},
        )
        self.entries.append(entry)
        return entry

    def log_start(self, operation: str, goal: str, url: str) -> None:
        self.metadata.update({"operation": operation, "goal": goal, "url": url})
        self._add(0, "info", f"{operation}: {goal}", {"url": url})

    def log_navigation(self, url: str) -> None:
        """Log a navigation event."""
        self._add(0, "navigation", f"Navigated to {url}", {"url": url})
        self.metadata["url"] = url

    def log_flatten(self, step: int, chunk: "FlattenedChunk") -> None:
        self._add(step, "flatten", f"Chunk {chunk.chunk + 1}/{chunk.total_chunks}: {len(chunk.addresses)} candidates", {
            "chunk": chunk.chunk,
            "total_chunks": chunk.total_chunks,
            "candidates": len(chunk.addresses),
            "text": chunk.text[:self.TEXT_PREVIEW],
        })

    def log_decision(self, step: int, decision: Optional["ActionDecision"]) -> None:
        if decision is None:
            self._add(step, "decision", "No decision for this chunk")
            return
        self._add(step, "decision", f"Decision: {decision.method} on element {decision.index}", decision.to_dict())

    def log_extraction(self, step: int, decision: "ExtractionDecision") -> None:
        self._add(step, "decision", f"Extraction progress: {decision.progress}", decision.to_dict())

    def log_action_result(self, step: int, result: "StepResult") -> None:
        status = "success" if result.success else "failed"
        self._add(step, "action", f"Action result: {result.operation} {status}", result.to_dict())

    def log_verification(self, step: int, completed: bool) -> None:
        self._add(step, "verification", f"Verifier: {'complete' if completed else 'not complete'}", {"success": completed})

    def log_outcome(self, success: bool, message: str) -> None:
        self.metadata["success"] = success
        self._add(len(self.entries), "outcome", message, {"success": success})

    def log_info(self, message: str) -> None:
        self._add(len(self.entries), "info", message)

    def log_warning(self, message: str) -> None:
        self._add(len(self.entries), "warning", message)

    def log_error(self, message: str, exception: Optional[Exception] = None) -> None:
        self._add(len(self.entries), "error", message, {"exception": str(exception) if exception else None})

    def save_screenshot(self, name: str, png: Optional[bytes]) -> Optional[str]:
        """Store PNG bytes and attach the file to the latest entry."""
        if not png:
            return None
        path = os.path.join(self.screenshots_dir, f"{name}.png")
        with open(path, "wb") as f:
            f.write(png)
        if self.entries:
            self.entries[-1].screenshot_path = path
        return path

    def to_dict(self) -> Dict[str, Any]:
        return {
            "metadata": self.metadata,
            "entries": [
                {
                    "timestamp": e.timestamp.isoformat(),
                    "step": e.step,
                    "event_type": e.event_type,
                    "message": e.message,
                    "data": e.data,
                    "screenshot_path": e.screenshot_path,
                }
                for e in self.entries
            ],
        }

    def generate_report(self) -> str:
        """
        Write the JSON record and the HTML timeline.

        Returns:
            Path to the HTML report
        """
        self.metadata["end_time"] = datetime.now().isoformat()
        self.metadata["total_steps"] = len([e for e in self.entries if e.event_type == "action"])

        json_path = os.path.join(self.run_dir, "flight_record.json")
        with open(json_path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

        report_path = os.path.join(self.run_dir, "report.html")
        with open(report_path, "w", encoding="utf-8") as f:
            f.write(self._build_html_report())
        return report_path

    def _build_html_report(self) -> str:
        """One section per pass, with the flattened text folded away."""
        passes: Dict[int, List[LogEntry]] = {}
        for entry in self.entries:
            passes.setdefault(entry.step, []).append(entry)

        sections = "".join(self._render_pass(step, entries) for step, entries in sorted(passes.items()))
        outcome = self.metadata.get("success")
        verdict = "n/a" if outcome is None else ("succeeded" if outcome else "failed")

        summary_rows = [
            ("Operation", self.metadata.get("operation", "")),
            ("Goal", self.metadata.get("goal", "")),
            ("URL", self.metadata.get("url", "N/A")),
            ("Started", self.metadata.get("start_time", "")),
            ("Finished", self.metadata.get("end_time", "")),
            ("Chunks flattened", self._count("flatten")),
            ("Steps applied", self.metadata.get("total_steps", 0)),
            ("Outcome", verdict),
        ]
        summary = "".join(
            f"<tr><th>{html.escape(label)}</th><td>{html.escape(str(value))}</td></tr>"
            for label, value in summary_rows
        )

        return f"""<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<title>Lookout run {html.escape(self.run_name)}</title>
<style>
    body {{ font: 14px/1.5 system-ui, sans-serif; margin: 2rem auto; max-width: 1000px; color: #222; }}
    table.summary th {{ text-align: left; padding-right: 1.5rem; color: #666; font-weight: normal; }}
    section.pass {{ border-top: 1px solid #ddd; padding: 0.75rem 0; }}
    section.pass h2 {{ font-size: 1rem; margin: 0 0 0.5rem; }}
    ul.events {{ list-style: none; padding: 0; margin: 0; }}
    ul.events li {{ padding: 0.15rem 0 0.15rem 0.6rem; border-left: 3px solid #ccc; margin-bottom: 0.3rem; }}
    li.ok {{ border-color: #2e7d32; }}
    li.bad {{ border-color: #c62828; }}
    li.warn {{ border-color: #f9a825; }}
    pre {{ background: #f6f6f6; padding: 0.5rem; overflow-x: auto; font-size: 12px; }}
    img {{ max-width: 320px; display: block; margin-top: 0.3rem; }}
</style>
</head>
<body>
<h1>Lookout run {html.escape(self.run_name)}</h1>
<table class="summary">{summary}</table>
{sections}
</body>
</html>"""

    def _count(self, event_type: str) -> int:
        return len([e for e in self.entries if e.event_type == event_type])

    def _render_pass(self, step: int, entries: List[LogEntry]) -> str:
        title = "Setup" if step == 0 else f"Pass {step}"
        items = "".join(self._render_entry(entry) for entry in entries)
        return f'<section class="pass"><h2>{title}</h2><ul class="events">{items}</ul></section>'

    def _render_entry(self, entry: LogEntry) -> str:
        body = f"<b>{entry.event_type}</b> {entry.timestamp.strftime('%H:%M:%S')} {html.escape(entry.message)}"

        data = dict(entry.data)
        text = data.pop("text", None) if entry.event_type == "flatten" else None
        if text:
            body += f"<details><summary>Flattened text</summary><pre>{html.escape(text)}</pre></details>"
        if data:
            body += f"<pre>{html.escape(json.dumps(data, indent=2, default=str))}</pre>"

        if entry.screenshot_path:
            try:
                rel_path = os.path.relpath(entry.screenshot_path, self.run_dir)
            except ValueError:
                # Paths on different drives
                rel_path = entry.screenshot_path
            body += f'<img src="{html.escape(rel_path)}" alt="{html.escape(entry.event_type)} screenshot">'

        return f'<li class="{self._status_class(entry)}">{body}</li>'

    def _status_class(self, entry: LogEntry) -> str:
        if entry.event_type == "error":
            return "bad"
        if entry.event_type == "warning":
            return "warn"
        if entry.event_type in ("action", "verification", "outcome"):
            return "ok" if entry.data.get("success") else "bad"
        return ""
