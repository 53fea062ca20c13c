"""Engine configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

_TRUTHY = {"1", "true", "yes", "on"}


@dataclass
class EngineSettings:
    """Settings for a ValidationEngine.

    Attributes:
        strict: Raise RegistryMissError on a registry miss instead of passing
        default_culture: Culture used for localized messages when the call sets none
        messages_path: Optional YAML message catalog loaded when the engine starts
    """

    strict: bool = False
    default_culture: str = "en"
    messages_path: Path | None = None

    @classmethod
    def from_env(cls) -> EngineSettings:
        """Create settings from environment variables.

        - FIELDCHECK_STRICT: "1", "true", "yes" or "on" enables strict mode
        - FIELDCHECK_DEFAULT_CULTURE: default culture (default "en")
        - FIELDCHECK_MESSAGES_PATH: path to a YAML message catalog
        """
        strict = os.environ.get("FIELDCHECK_STRICT", "").strip().lower() in _TRUTHY
        culture = os.environ.get("FIELDCHECK_DEFAULT_CULTURE") or "en"
        messages = os.environ.get("FIELDCHECK_MESSAGES_PATH")
        return cls(
            strict=strict,
            default_culture=culture,
            messages_path=Path(messages) if messages else None,
        )
