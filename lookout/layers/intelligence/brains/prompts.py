"""
Prompts and response parsing shared by the model-backed brains.
"""

from typing import Any, Dict, Optional
import json
import re

from .base import ActionDecision, ExtractionDecision


ACT_SYSTEM_PROMPT = """You are a browser automation assistant.
You receive a GOAL, the steps already taken, and a list of page elements.
Each element is on its own line as "index:<tag attributes>text</tag>" or "index:text".

Pick ONE element and ONE method that moves toward the goal.
Allowed methods: click, fill, type, scrollIntoView, check, uncheck, selectOption, hover, press.

Respond with a JSON object:
{
  "element": <index of the element>,
  "method": "<method>",
  "args": [<arguments, e.g. the text to type or the key to press>],
  "step": "<short description of this step>",
  "why": "<why this step helps>",
  "completed": <true if the goal is done once this step is applied>
}
If no element on this list helps, respond with {"element": null}.
"""

VERIFY_SYSTEM_PROMPT = """You verify whether a browser automation goal was achieved.
You receive the GOAL, the steps taken, and either a screenshot of the whole page or
the list of page elements. Respond with a JSON object: {"completed": true|false}.
"""

EXTRACT_SYSTEM_PROMPT = """You extract structured data from a web page.
You receive an INSTRUCTION, a JSON SCHEMA, what was extracted from earlier parts of
the page, a progress note, and the elements of the current part of the page.

Extract only what is on the current part and is not already extracted.
Respond with a JSON object:
{
  "result": <object matching the schema>,
  "progress": "<what has been extracted so far>",
  "completed": <true if the instruction is fully satisfied>
}
"""

OBSERVE_SYSTEM_PROMPT = """You locate one element on a web page.
You receive an OBSERVATION describing an element and the list of page elements.
Respond with a JSON object: {"element": <index>} or {"element": "NONE"} if nothing matches.
"""

ASK_SYSTEM_PROMPT = "You are a helpful assistant answering questions about browsing tasks."


def act_prompt(goal: str, flattened_text: str, steps: str) -> str:
    return (
        f"GOAL: {goal}\n\n"
        f"STEPS TAKEN:\n{steps or 'None'}\n\n"
        f"ELEMENTS:\n{flattened_text}"
    )


def verify_prompt(goal: str, steps: str, flattened_text: Optional[str] = None) -> str:
    prompt = f"GOAL: {goal}\n\nSTEPS TAKEN:\n{steps or 'None'}"
    if flattened_text is not None:
        prompt += f"\n\nELEMENTS:\n{flattened_text}"
    return prompt


def extract_prompt(
    instruction: str,
    flattened_text: str,
    progress: str,
    previous: Dict[str, Any],
    schema: Dict[str, Any],
) -> str:
    return (
        f"INSTRUCTION: {instruction}\n\n"
        f"SCHEMA:\n{json.dumps(schema, indent=2)}\n\n"
        f"PREVIOUSLY EXTRACTED:\n{json.dumps(previous, indent=2)}\n\n"
        f"PROGRESS: {progress or 'None'}\n\n"
        f"ELEMENTS:\n{flattened_text}"
    )


def observe_prompt(observation: str, flattened_text: str) -> str:
    return f"OBSERVATION: {observation}\n\nELEMENTS:\n{flattened_text}"


def parse_json_object(content: str) -> Dict[str, Any]:
    """Pull a JSON object out of a model reply (models often wrap it in markdown)."""
    if "```json" in content:
        content = content.split("```json")[1].split("```")[0].strip()
    elif "{" in content:
        content = content[content.find("{"):content.rfind("}") + 1]
    payload = json.loads(content)
    if not isinstance(payload, dict):
        raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
    return payload


def _as_index(value: Any) -> Optional[int]:
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and re.fullmatch(r"\s*\d+\s*", value):
        return int(value)
    return None


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() == "true"
    return bool(value)


def to_action_decision(payload: Dict[str, Any]) -> Optional[ActionDecision]:
    """Turn a parsed reply into an ActionDecision; None when no element was chosen."""
    index = _as_index(payload.get("element", payload.get("index")))
    method = payload.get("method")
    if index is None or not method:
        return None
    args = payload.get("args") or []
    if not isinstance(args, list):
        args = [args]
    return ActionDecision(
        index=index,
        method=str(method),
        args=args,
        step=str(payload.get("step", "")),
        rationale=str(payload.get("why", payload.get("rationale", ""))),
        completed=_as_bool(payload.get("completed", False)),
    )


def to_extraction_decision(payload: Dict[str, Any]) -> ExtractionDecision:
    result = payload.get("result")
    if not isinstance(result, dict):
        # Some models answer with the schema's fields at the top level.
        result = {k: v for k, v in payload.items() if k not in ("progress", "completed", "metadata")}
    metadata = payload.get("metadata") if isinstance(payload.get("metadata"), dict) else payload
    return ExtractionDecision(
        result=result,
        progress=str(metadata.get("progress", "")),
        completed=_as_bool(metadata.get("completed", False)),
    )


def to_observation_index(payload: Dict[str, Any]) -> Optional[int]:
    return _as_index(payload.get("element", payload.get("index")))
