"""
System Profiler for adaptive brain selection.

Detects hardware capabilities (RAM, CPU) and available API keys
to recommend the optimal intelligence backend.
"""

import os
import psutil
import logging
from dataclasses import dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass
class SystemProfile:
    """Hardware and environment profile."""
    total_ram_gb: float
    available_ram_gb: float
    cpu_count: int
    has_openai_key: bool
    has_anthropic_key: bool

    @property
    def has_cloud_key(self) -> bool:
        return self.has_openai_key or self.has_anthropic_key

    @property
    def can_run_local_slm(self) -> bool:
        """
        Check if the system can comfortably run a local SLM next to a browser.

        Flattened pages need a long context, so the bar is 8GB of RAM.
        """
        return self.total_ram_gb >= 8.0


class SystemProfiler:
    """Detects system capabilities."""

    @staticmethod
    def get_profile() -> SystemProfile:
        """Get the current system profile."""
        vm = psutil.virtual_memory()
        cpu_count = psutil.cpu_count(logical=True)

        return SystemProfile(
            total_ram_gb=round(vm.total / (1024 ** 3), 2),
            available_ram_gb=round(vm.available / (1024 ** 3), 2),
            cpu_count=cpu_count or 1,
            has_openai_key=bool(os.environ.get("OPENAI_API_KEY", "").strip()),
            has_anthropic_key=bool(os.environ.get("ANTHROPIC_API_KEY", "").strip()),
        )

    @staticmethod
    def recommend_brain_type(profile: Optional[SystemProfile] = None, model_path: Optional[str] = None) -> str:
        """
        Recommend the best brain type based on the profile.

        A local model is only an option when a GGUF file was actually given.

        Returns:
            str: 'cloud', 'local', or 'heuristic'
        """
        if profile is None:
            profile = SystemProfiler.get_profile()

        logger.info(f"System Profile: RAM={profile.total_ram_gb}GB, Keys=OA:{profile.has_openai_key}/AN:{profile.has_anthropic_key}")

        if profile.has_cloud_key:
            return "cloud"

        if model_path and model_path.endswith(".gguf") and os.path.exists(model_path) and profile.can_run_local_slm:
            return "local"

        return "heuristic"
