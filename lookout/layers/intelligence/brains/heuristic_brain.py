from dataclasses import dataclass, field
from typing import List, Dict, Any, Optional, Tuple
import logging
import re

from lookout.core.goal_parser import RegexGoalParser, GoalStep, TargetSpec
from .base import BrainInterface, ActionDecision, ExtractionDecision

logger = logging.getLogger(__name__)

_ELEMENT_LINE = re.compile(r"^(\d+):<([a-zA-Z][\w-]*)((?:\s+[^\s=>]+=\"[^\"]*\")*)>(.*)</\2>$")
_TEXT_LINE = re.compile(r"^(\d+):(.*)$")
_ATTRIBUTE = re.compile(r"([^\s=>]+)=\"([^\"]*)\"")
_NUMBER = re.compile(r"-?\d+(?:[.,]\d+)*")

SCROLL_STEP = "Scrolled to another section"

STOP_WORDS = {
    "click", "type", "fill", "verify", "select", "press", "check", "hover",
    "the", "a", "an", "in", "on", "at", "for", "with", "to", "of", "by", "from",
    "button", "link", "input", "field", "text", "page", "site", "app",
    "is", "are", "be", "was", "were", "and", "or", "but", "all", "each",
}

FILLABLE_TAGS = {"input", "textarea"}


@dataclass
class FlatLine:
    """One line of flattened page text, parsed back into its parts."""
    index: int
    tag: Optional[str]
    text: str
    attributes: Dict[str, str] = field(default_factory=dict)

    @property
    def label(self) -> str:
        extras = [self.attributes.get(a, "") for a in ("aria-label", "aria-name", "id")]
        return " ".join([self.text] + [e for e in extras if e]).strip()


def parse_flattened(flattened_text: str) -> List[FlatLine]:
    lines = []
    for raw in flattened_text.splitlines():
        element = _ELEMENT_LINE.match(raw)
        if element:
            lines.append(FlatLine(
                index=int(element.group(1)),
                tag=element.group(2).lower(),
                text=element.group(4),
                attributes=dict(_ATTRIBUTE.findall(element.group(3))),
            ))
            continue
        text = _TEXT_LINE.match(raw)
        if text:
            lines.append(FlatLine(index=int(text.group(1)), tag=None, text=text.group(2)))
    return lines


def count_applied_steps(steps: str) -> int:
    """Steps in the log that did something (scroll markers excluded)."""
    return sum(
        1 for line in steps.splitlines()
        if line.startswith("## Step:") and SCROLL_STEP not in line
    )


class HeuristicBrain(BrainInterface):
    """
    Heuristic-based brain using keyword matching and scoring.
    Fast, robust, and works without any external models.
    """

    supports_vision = False

    def __init__(self, parser: Optional[RegexGoalParser] = None):
        self.parser = parser or RegexGoalParser()

    def decide_action(
        self,
        goal: str,
        flattened_text: str,
        steps: str,
        screenshot: Optional[bytes] = None,
    ) -> Optional[ActionDecision]:
        """Match the next unfinished goal step against the lines of this chunk."""
        interactions = self.parser.parse(goal).interactions
        done = count_applied_steps(steps)
        if done >= len(interactions):
            return None
        step = interactions[done]

        lines = parse_flattened(flattened_text)
        best = self._best_match(step, lines)
        if best is None:
            logger.debug(f"[HeuristicBrain] No match for {step} in this chunk")
            return None
        line, score = best

        args = [step.value] if step.value is not None else []
        return ActionDecision(
            index=line.index,
            method=step.method,
            args=args,
            step=step.description or f"{step.method} {step.target}",
            rationale=f"Matched '{line.label[:30]}' with goal target {step.target} (score {score:.2f})",
            completed=done + 1 == len(interactions),
        )

    def verify_completion(
        self,
        goal: str,
        steps: str,
        screenshot: Optional[bytes] = None,
        flattened_text: Optional[str] = None,
    ) -> bool:
        parsed = self.parser.parse(goal)
        if count_applied_steps(steps) < len(parsed.interactions):
            return False
        if not parsed.checks:
            return True
        if flattened_text is None:
            # Nothing to read the checks against.
            return False
        page_text = flattened_text.lower()
        return all((check.value or "").lower() in page_text for check in parsed.checks)

    def decide_extraction(
        self,
        instruction: str,
        flattened_text: str,
        progress: str,
        previous: Dict[str, Any],
        schema: Dict[str, Any],
    ) -> ExtractionDecision:
        """
        Fill schema properties from lines whose text overlaps the instruction
        and the property name. Never reports completion on its own, so every
        chunk gets read.
        """
        lines = [l for l in parse_flattened(flattened_text) if l.text.strip()]
        result: Dict[str, Any] = {}
        for name, prop_schema in (schema.get("properties") or {}).items():
            query = f"{instruction} {name.replace('_', ' ')} {prop_schema.get('description', '')}"
            ranked = sorted(
                ((self._score_context_relevance(query, l.label), l) for l in lines),
                key=lambda pair: pair[0],
                reverse=True,
            )
            matching = [l for score, l in ranked if score > 0]
            value = self._coerce(prop_schema, matching)
            if value is not None:
                result[name] = value
        return ExtractionDecision(
            result=result,
            progress=f"read {len(lines)} elements",
            completed=False,
        )

    def decide_observation_target(self, observation: str, flattened_text: str) -> Optional[int]:
        target = self.parser._parse_target(observation)
        step = GoalStep(method="click", target=target, description=observation)
        best = self._best_match(step, parse_flattened(flattened_text))
        return best[0].index if best else None

    def ask(self, question: str) -> Optional[str]:
        logger.warning("[HeuristicBrain] ask() needs a language model; returning None")
        return None

    def _best_match(self, step: GoalStep, lines: List[FlatLine]) -> Optional[Tuple[FlatLine, float]]:
        scored = []
        for position, line in enumerate(lines):
            score, details = self._score_line(line, step, lines[max(0, position - 5):position])
            if score > 0:
                scored.append((line, score, details))
        if not scored:
            return None
        # Stable sort keeps discovery order among equal scores.
        scored.sort(key=lambda x: x[1], reverse=True)
        for line, score, details in scored[:5]:
            detail_str = ", ".join(f"{k}: {v:.2f}" for k, v in details.items())
            logger.debug(f"[HeuristicBrain] Candidate {line.index} [Score {score:.2f}]: '{line.label[:30]}' | {detail_str}")
        return scored[0][0], scored[0][1]

    def _score_line(self, line: FlatLine, step: GoalStep, preceding: List[FlatLine]) -> Tuple[float, dict]:
        """Score a line and return the breakdown."""
        score = 0.0
        details = {}
        tag = line.tag or ""
        target: TargetSpec = step.target

        # 1. Method compatibility
        action_boost = 0.0
        if step.method in ("click", "hover"):
            if tag in ("button", "a", "summary") or line.attributes.get("aria-role") == "button":
                action_boost += 0.2
        elif step.method == "fill":
            action_boost += 0.3 if tag in FILLABLE_TAGS else -0.5
        elif step.method == "selectOption":
            action_boost += 0.3 if tag == "select" else -0.5
        elif step.method in ("check", "uncheck"):
            action_boost += 0.3 if tag in ("input", "label") else 0.0
        score += action_boost
        details["action"] = action_boost

        # 2. Text matching
        text_boost = 0.0
        if target.text:
            target_text = target.text.lower()
            line_text = line.text.strip().lower()
            text_score = self._score_context_relevance(target_text, line.label, use_stop_words=False)
            if text_score > 0.2:
                text_boost += text_score * 2.5
                if target_text == line_text:
                    text_boost += 0.5
            else:
                text_boost -= 1.0
            for attr in ("aria-label", "aria-name", "id", "class"):
                attr_val = line.attributes.get(attr, "").lower()
                if attr_val and (target_text == attr_val or target_text in attr_val):
                    text_boost += 0.8
        score += text_boost
        details["text"] = text_boost

        # 3. ID/Class match
        meta_boost = 0.0
        if target.id and line.attributes.get("id") == target.id:
            meta_boost += 0.9
        if target.css_class and target.css_class in line.attributes.get("class", "").split():
            meta_boost += 0.8
        score += meta_boost
        details["meta"] = meta_boost

        # 4. Context hint, read from the lines discovered just before this one
        context_boost = 0.0
        if step.context_hint:
            context_text = " | ".join(l.text for l in preceding) + " " + line.label
            c_score = self._score_context_relevance(step.context_hint, context_text)
            context_boost += c_score * 2.5 if c_score > 0.35 else -10.0
        score += context_boost
        details["context"] = context_boost

        # 5. Navigation chrome rarely is the target
        penalty = 0.0
        if step.method == "click" and target.text:
            lower_label = line.label.lower()
            if any(w in lower_label for w in ("menu", "navigation", "toggle")):
                if not any(w in target.text.lower() for w in ("menu", "navigation", "toggle")):
                    penalty -= 1.5
        score += penalty
        details["penalty"] = penalty

        return max(0.0, score), details

    def _coerce(self, prop_schema: Dict[str, Any], matching: List[FlatLine]) -> Any:
        kind = prop_schema.get("type")
        if kind == "array":
            item_type = (prop_schema.get("items") or {}).get("type", "string")
            if item_type != "string":
                return None
            return [l.text.strip() for l in matching]
        if not matching:
            return None
        best = matching[0].text.strip()
        if kind in ("number", "integer"):
            found = _NUMBER.search(best)
            if not found:
                return None
            number = float(found.group(0).replace(",", ""))
            return int(number) if kind == "integer" else number
        if kind == "boolean":
            return None
        return best

    def _score_context_relevance(self, goal_description: str, element_context: str, use_stop_words: bool = True) -> float:
        """Semantic relevance scoring with token overlap."""
        if not element_context or not goal_description:
            return 0.0

        def tokenize(text: str) -> List[str]:
            raw_tokens = re.findall(r'[a-z0-9\-\.]+', text.lower())
            if not use_stop_words:
                return [t for t in raw_tokens if len(t) > 1]
            return [t for t in raw_tokens if len(t) > 2 and t not in STOP_WORDS]

        def expand(tokens: List[str]) -> set:
            expanded = set(tokens)
            for t in tokens:
                if '-' in t or '.' in t:
                    expanded.update(p for p in re.split(r'[\-\.]', t) if p)
            return expanded

        goal_tokens = expand(tokenize(goal_description))
        context_tokens = expand(tokenize(element_context))

        common_matches = [t for t in goal_tokens if t in context_tokens and len(t) > 1]
        if not common_matches:
            return 0.0

        score = 0.0
        for token in common_matches:
            weight = 0.3
            if len(token) > 5: weight += 0.1
            if len(token) > 8: weight += 0.2
            if any(c.isdigit() for c in token) and any(c.isalpha() for c in token):
                weight += 0.3
            if "-" in token or "." in token:
                weight += 0.2
            score += weight

        return min(0.7, score)
