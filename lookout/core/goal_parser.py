"""
Goal Parser - splits a plain-English action goal into structured steps.

Used by the heuristic brain, which has no model to read the goal for it.
"""

import re
from dataclasses import dataclass, field
from typing import List, Dict, Optional


@dataclass
class TargetSpec:
    """Specifications for identifying a target element."""
    text: Optional[str] = None
    css_class: Optional[str] = None
    id: Optional[str] = None
    role: Optional[str] = None
    attributes: Dict[str, str] = field(default_factory=dict)

    def __repr__(self) -> str:
        parts = []
        if self.text: parts.append(f"text='{self.text}'")
        if self.css_class: parts.append(f"class='{self.css_class}'")
        if self.id: parts.append(f"id='{self.id}'")
        if self.role: parts.append(f"role='{self.role}'")
        return f"TargetSpec({', '.join(parts)})"


@dataclass
class GoalStep:
    """A single structured step in a multi-step goal."""
    method: str  # click, fill, selectOption, check, uncheck, hover, press, verify
    target: TargetSpec
    value: Optional[str] = None  # Text to type, option to select, key to press, text to verify
    context_hint: Optional[str] = None  # Section the target lives in ("in the footer")
    description: str = ""

    @property
    def is_interaction(self) -> bool:
        return self.method != "verify"

    def __repr__(self) -> str:
        return f"GoalStep(method='{self.method}', target={self.target}, value={self.value}, context='{self.context_hint}')"


@dataclass
class ParsedGoal:
    """Structured representation of the entire user goal."""
    raw_goal: str
    steps: List[GoalStep] = field(default_factory=list)

    @property
    def interactions(self) -> List[GoalStep]:
        return [s for s in self.steps if s.is_interaction]

    @property
    def checks(self) -> List[GoalStep]:
        return [s for s in self.steps if not s.is_interaction]


_QUOTED = r"['\"]([^'\"]+)['\"]"


class RegexGoalParser:
    """Parses natural language goals into a sequence of GoalSteps."""

    SPLIT_THEN = re.compile(r"\s*(?:,\s*)?(?:and\s+)?then\s+", re.IGNORECASE)
    SPLIT_AND = re.compile(
        r"\s+and\s+(?=click|press|type|fill|enter|select|choose|check|uncheck|hover|search|verify)",
        re.IGNORECASE,
    )

    def parse(self, goal: str) -> ParsedGoal:
        step_texts = self.SPLIT_THEN.split(goal)
        if len(step_texts) == 1:
            step_texts = self.SPLIT_AND.split(goal)

        parsed_steps = []
        for raw_step in step_texts:
            step = self._parse_single_step(raw_step.strip())
            if step:
                parsed_steps.append(step)

        return ParsedGoal(raw_goal=goal, steps=parsed_steps)

    def _parse_single_step(self, text: str) -> Optional[GoalStep]:
        """Parse a single clause into a GoalStep with context extraction."""
        if not text:
            return None

        context_hint = None
        context_match = re.search(
            r"^(.*?)\s+(?:in|inside|within|near|under)\s+the\s+['\"]?([^'\"]+?)['\"]?(?:\s+section)?$",
            text, re.IGNORECASE,
        )
        base_text = text
        if context_match and not re.search(r"(?:type|fill|enter|search)\b", context_match.group(1), re.IGNORECASE):
            base_text = context_match.group(1).strip()
            context_hint = context_match.group(2).strip()

        # 1. VERIFY
        verify_match = re.search(r"^verify\s+(?:that\s+)?(?:the\s+)?(.*)$", base_text, re.IGNORECASE)
        if verify_match:
            quoted = re.search(_QUOTED, base_text)
            val = quoted.group(1) if quoted else re.sub(
                r"\s+(?:exists|appears|is visible|is shown|is present)$", "", verify_match.group(1), flags=re.IGNORECASE,
            )
            return GoalStep(method="verify", target=TargetSpec(), value=val.strip(), context_hint=context_hint, description=text)

        # 2. FILL: "type 'x' into the email field", "search for 'x'"
        fill_match = re.search(
            rf"^(?:type|fill(?:\s+in)?|enter|input|search(?:\s+for)?)\s+{_QUOTED}(?:\s+(?:in|into|on|at)\s+(?:the\s+)?(.*))?$",
            base_text, re.IGNORECASE,
        )
        if fill_match:
            return GoalStep(
                method="fill",
                target=self._parse_target(fill_match.group(2) or "search"),
                value=fill_match.group(1),
                context_hint=context_hint,
                description=text,
            )
        # "fill the email field with 'x'"
        fill_with = re.search(rf"^fill\s+(?:in\s+)?(?:the\s+)?(.*?)\s+with\s+{_QUOTED}", base_text, re.IGNORECASE)
        if fill_with:
            return GoalStep(
                method="fill",
                target=self._parse_target(fill_with.group(1)),
                value=fill_with.group(2),
                context_hint=context_hint,
                description=text,
            )
        unquoted_search = re.search(r"^search\s+(?:for\s+)?(.+)$", base_text, re.IGNORECASE)
        if unquoted_search:
            return GoalStep(
                method="fill",
                target=self._parse_target("search"),
                value=unquoted_search.group(1).strip(),
                context_hint=context_hint,
                description=text,
            )

        # 3. SELECT: "select 'Blue' from the colour dropdown"
        select_match = re.search(
            rf"^(?:select|choose)\s+{_QUOTED}(?:\s+(?:from|in)\s+(?:the\s+)?(.*))?$", base_text, re.IGNORECASE,
        )
        if select_match:
            return GoalStep(
                method="selectOption",
                target=self._parse_target(select_match.group(2) or ""),
                value=select_match.group(1),
                context_hint=context_hint,
                description=text,
            )

        # 4. PRESS: "press Enter in the search box"
        press_match = re.search(r"^press\s+(?:the\s+)?(\w+)(?:\s+key)?(?:\s+(?:in|on)\s+(?:the\s+)?(.*))?$", base_text, re.IGNORECASE)
        if press_match:
            return GoalStep(
                method="press",
                target=self._parse_target(press_match.group(2) or ""),
                value=press_match.group(1),
                context_hint=context_hint,
                description=text,
            )

        # 5. CHECK / UNCHECK / HOVER
        toggle_match = re.search(r"^(uncheck|check|tick|untick|hover(?:\s+over)?)\s+(?:the\s+)?(.*)$", base_text, re.IGNORECASE)
        if toggle_match:
            verb = toggle_match.group(1).lower()
            method = "hover" if verb.startswith("hover") else ("uncheck" if verb in ("uncheck", "untick") else "check")
            return GoalStep(
                method=method,
                target=self._parse_target(toggle_match.group(2)),
                context_hint=context_hint,
                description=text,
            )

        # 6. CLICK, and anything else is read as a click on the named thing
        click_match = re.search(r"^(?:click|tap|open)\s+(?:on\s+)?(?:the\s+)?(.*?)$", base_text, re.IGNORECASE)
        label = click_match.group(1) if click_match else base_text
        return GoalStep(method="click", target=self._parse_target(label), context_hint=context_hint, description=text)

    def _parse_target(self, text: str) -> TargetSpec:
        """Extract TargetSpec from text (e.g. 'button with class X')."""
        spec = TargetSpec()

        for attr, pattern in (
            ("css_class", r"class\s*[:=\s]\s*['\"]?([a-zA-Z0-9_-]+)['\"]?"),
            ("id", r"\bid\s*[:=\s]\s*['\"]?([a-zA-Z0-9_-]+)['\"]?"),
            ("role", r"role\s*[:=\s]\s*['\"]?([a-zA-Z0-9_-]+)['\"]?"),
        ):
            match = re.search(pattern, text, re.IGNORECASE)
            if match:
                setattr(spec, attr, match.group(1))
                text = text.replace(match.group(0), "")

        quoted = re.search(_QUOTED, text)
        if quoted:
            spec.text = quoted.group(1)
            return spec

        clean_text = re.sub(r"\s+(?:with|the)\s+", " ", f" {text} ", flags=re.IGNORECASE).strip()
        clean_text = re.sub(
            r"\s+(?:button|link|icon|dropdown|menu|toggle|field|input|box|checkbox)$", "", clean_text, flags=re.IGNORECASE,
        ).strip()
        if clean_text:
            spec.text = clean_text.strip("'\" ")

        return spec
