import os
import base64
import logging
from typing import List, Any, Dict, Optional
from lookout.core.errors import DecisionError
from .base import BrainInterface, ActionDecision, ExtractionDecision
from . import prompts

logger = logging.getLogger(__name__)

# Models known to accept image input.
VISION_MODELS = (
    "gpt-4o",
    "gpt-4o-mini",
    "gpt-4-turbo",
    "gpt-4.1",
    "claude-3",
    "claude-sonnet",
    "claude-opus",
    "claude-haiku",
)


class CloudBrain(BrainInterface):
    """
    Cloud-based brain using OpenAI or Anthropic APIs.

    Requires OPENAI_API_KEY or ANTHROPIC_API_KEY environment variables.
    """

    def __init__(self, provider: str = "auto", model: str = None):
        self.provider = provider
        self.model = model
        self.client = None
        self._init_client()

    def _init_client(self):
        """Initialize the API client."""
        openai_key = os.environ.get("OPENAI_API_KEY")
        anthropic_key = os.environ.get("ANTHROPIC_API_KEY")

        # Auto-select provider if not specified
        if self.provider == "auto":
            if self.model and self.model.startswith("claude") and anthropic_key:
                self.provider = "anthropic"
            elif openai_key:
                self.provider = "openai"
            elif anthropic_key:
                self.provider = "anthropic"
            else:
                raise ValueError("No API keys found for CloudBrain. Set OPENAI_API_KEY or ANTHROPIC_API_KEY.")

        if self.provider == "openai":
            try:
                from openai import OpenAI
                self.client = OpenAI(api_key=openai_key)
                self.model = self.model or "gpt-4o"
            except ImportError:
                raise ImportError("Please install openai: pip install openai")

        elif self.provider == "anthropic":
            try:
                from anthropic import Anthropic
                self.client = Anthropic(api_key=anthropic_key)
                self.model = self.model or "claude-3-5-sonnet-latest"
            except ImportError:
                raise ImportError("Please install anthropic: pip install anthropic")

        else:
            raise ValueError(f"Unknown CloudBrain provider: {self.provider}")

        logger.info(f"[CloudBrain] Initialized using {self.provider} ({self.model})")

    @property
    def supports_vision(self) -> bool:
        return any(self.model.startswith(prefix) for prefix in VISION_MODELS)

    def decide_action(
        self,
        goal: str,
        flattened_text: str,
        steps: str,
        screenshot: Optional[bytes] = None,
    ) -> Optional[ActionDecision]:
        """Ask the model for the next step; any error counts as no decision."""
        try:
            payload = prompts.parse_json_object(self._query_llm(
                prompts.ACT_SYSTEM_PROMPT,
                prompts.act_prompt(goal, flattened_text, steps),
                images=[screenshot] if screenshot else None,
            ))
            return prompts.to_action_decision(payload)
        except Exception as e:
            logger.error(f"[CloudBrain] Error: {e}")
            return None

    def decide_extraction(
        self,
        instruction: str,
        flattened_text: str,
        progress: str,
        previous: Dict[str, Any],
        schema: Dict[str, Any],
    ) -> ExtractionDecision:
        try:
            payload = prompts.parse_json_object(self._query_llm(
                prompts.EXTRACT_SYSTEM_PROMPT,
                prompts.extract_prompt(instruction, flattened_text, progress, previous, schema),
            ))
            return prompts.to_extraction_decision(payload)
        except Exception as e:
            raise DecisionError("extraction", e) from e

    def verify_completion(
        self,
        goal: str,
        steps: str,
        screenshot: Optional[bytes] = None,
        flattened_text: Optional[str] = None,
    ) -> bool:
        try:
            payload = prompts.parse_json_object(self._query_llm(
                prompts.VERIFY_SYSTEM_PROMPT,
                prompts.verify_prompt(goal, steps, flattened_text),
                images=[screenshot] if screenshot else None,
            ))
            return payload.get("completed") is True
        except Exception as e:
            logger.error(f"[CloudBrain] Verification error: {e}")
            return False

    def decide_observation_target(self, observation: str, flattened_text: str) -> Optional[int]:
        try:
            payload = prompts.parse_json_object(self._query_llm(
                prompts.OBSERVE_SYSTEM_PROMPT,
                prompts.observe_prompt(observation, flattened_text),
            ))
            return prompts.to_observation_index(payload)
        except Exception as e:
            raise DecisionError("observation", e) from e

    def ask(self, question: str) -> Optional[str]:
        return self._query_llm(prompts.ASK_SYSTEM_PROMPT, question, json_mode=False) or None

    def _query_llm(
        self,
        system: str,
        user: str,
        images: Optional[List[bytes]] = None,
        json_mode: bool = True,
    ) -> str:
        """Send request to the configured provider and return the reply text."""
        images = images if images and self.supports_vision else []

        if self.provider == "openai":
            content: Any = user
            if images:
                content = [{"type": "text", "text": user}] + [
                    {
                        "type": "image_url",
                        "image_url": {"url": "data:image/png;base64," + base64.b64encode(img).decode("ascii")},
                    }
                    for img in images
                ]
            kwargs = {"response_format": {"type": "json_object"}} if json_mode else {}
            response = self.client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system},
                    {"role": "user", "content": content}
                ],
                **kwargs
            )
            return response.choices[0].message.content or ""

        elif self.provider == "anthropic":
            blocks: List[Dict[str, Any]] = [
                {
                    "type": "image",
                    "source": {
                        "type": "base64",
                        "media_type": "image/png",
                        "data": base64.b64encode(img).decode("ascii"),
                    },
                }
                for img in images
            ]
            blocks.append({"type": "text", "text": user})
            message = self.client.messages.create(
                model=self.model,
                max_tokens=1024,
                system=system,
                messages=[
                    {"role": "user", "content": blocks}
                ]
            )
            return message.content[0].text

        return ""
