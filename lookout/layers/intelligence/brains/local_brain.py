import os
import logging
from typing import Any, Dict, Optional
from lookout.core.errors import DecisionError
from .base import BrainInterface, ActionDecision, ExtractionDecision
from . import prompts

logger = logging.getLogger(__name__)

class LocalBrain(BrainInterface):
    """
    Local SLM-based brain using llama-cpp-python.

    Supports GGUF models (e.g., Phi-3, Mistral, Llama-3). Text only: screenshots
    are never sent.
    """

    supports_vision = False

    def __init__(self, model_path: str = None, n_ctx: int = 8192):
        """
        Initialize the local brain.

        Args:
            model_path: Path to the GGUF model file.
            n_ctx: Context window; flattened chunks are long, so keep this generous.
        """
        self.model_path = model_path
        self.n_ctx = n_ctx
        self.llm = None
        self._init_model()

    def _init_model(self):
        """Initialize the llama-cpp model."""
        if not self.model_path:
            logger.warning("[LocalBrain] No model path provided.")
            return

        if not os.path.exists(self.model_path):
            logger.error(f"[LocalBrain] Model file not found: {self.model_path}")
            return

        try:
            from llama_cpp import Llama
            logger.info(f"[LocalBrain] Loading model from {self.model_path}...")
            self.llm = Llama(
                model_path=self.model_path,
                n_ctx=self.n_ctx,
                n_threads=os.cpu_count() or 4,
                verbose=False
            )
            logger.info("[LocalBrain] Model loaded successfully.")
        except ImportError:
            logger.error("[LocalBrain] llama-cpp-python not installed. Run: pip install llama-cpp-python")
        except Exception as e:
            logger.error(f"[LocalBrain] Error loading model: {e}")

    def _complete(self, system: str, user: str, json_mode: bool = True) -> str:
        """Run one chat turn (Phi-3 style tags) and return the raw reply."""
        if not self.llm:
            raise RuntimeError("LocalBrain model not loaded")
        suffix = " Respond in JSON." if json_mode else ""
        prompt = f"<|system|>\n{system}<|end|>\n<|user|>\n{user}{suffix}<|end|>\n<|assistant|>\n"
        response = self.llm(
            prompt,
            max_tokens=512,
            stop=["<|end|>"],
            echo=False
        )
        return response["choices"][0]["text"].strip()

    def decide_action(
        self,
        goal: str,
        flattened_text: str,
        steps: str,
        screenshot: Optional[bytes] = None,
    ) -> Optional[ActionDecision]:
        try:
            content = self._complete(prompts.ACT_SYSTEM_PROMPT, prompts.act_prompt(goal, flattened_text, steps))
            return prompts.to_action_decision(prompts.parse_json_object(content))
        except Exception as e:
            logger.error(f"[LocalBrain] Inference error: {e}")
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
            content = self._complete(
                prompts.EXTRACT_SYSTEM_PROMPT,
                prompts.extract_prompt(instruction, flattened_text, progress, previous, schema),
            )
            return prompts.to_extraction_decision(prompts.parse_json_object(content))
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
            content = self._complete(prompts.VERIFY_SYSTEM_PROMPT, prompts.verify_prompt(goal, steps, flattened_text))
            return prompts.parse_json_object(content).get("completed") is True
        except Exception as e:
            logger.error(f"[LocalBrain] Verification error: {e}")
            return False

    def decide_observation_target(self, observation: str, flattened_text: str) -> Optional[int]:
        try:
            content = self._complete(prompts.OBSERVE_SYSTEM_PROMPT, prompts.observe_prompt(observation, flattened_text))
            return prompts.to_observation_index(prompts.parse_json_object(content))
        except Exception as e:
            raise DecisionError("observation", e) from e

    def ask(self, question: str) -> Optional[str]:
        return self._complete(prompts.ASK_SYSTEM_PROMPT, question, json_mode=False) or None
