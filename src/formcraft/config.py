"""
Engine configuration.

Settings that tune the engine's runtime behaviour, with JSON loading in the
same tolerant style as the application config: a missing file yields the
defaults and a corrupted file is reported and ignored.
"""

import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .logging import logger


# Coalescing window for payload emission (roughly one frame)
DEFAULT_EMIT_DELAY_MS = 16


@dataclass
class EngineConfig:
    """Runtime settings for a form session."""
    emit_delay_ms: int = DEFAULT_EMIT_DELAY_MS
    slug_matching: bool = True  # Slug fallback for equals/in on strings
    clear_errors_on_hide: bool = True
    debug: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "emit_delay_ms": self.emit_delay_ms,
            "slug_matching": self.slug_matching,
            "clear_errors_on_hide": self.clear_errors_on_hide,
            "debug": self.debug,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        emit_delay_ms = data.get("emit_delay_ms", DEFAULT_EMIT_DELAY_MS)
        if not isinstance(emit_delay_ms, int) or emit_delay_ms < 0:
            logger.warning(
                f"Invalid emit_delay_ms {emit_delay_ms!r}, using {DEFAULT_EMIT_DELAY_MS}"
            )
            emit_delay_ms = DEFAULT_EMIT_DELAY_MS

        return cls(
            emit_delay_ms=emit_delay_ms,
            slug_matching=bool(data.get("slug_matching", True)),
            clear_errors_on_hide=bool(data.get("clear_errors_on_hide", True)),
            debug=bool(data.get("debug", False)),
        )


def load_config(path: Optional[str] = None) -> EngineConfig:
    """
    Load engine configuration from a JSON file.

    Args:
        path: Path to the JSON file. None returns the defaults.

    Returns:
        EngineConfig instance
    """
    if not path or not os.path.exists(path):
        return EngineConfig()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw_data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        logger.warning(f"Could not read engine config {path}: {e}")
        return EngineConfig()

    if not isinstance(raw_data, dict):
        logger.warning(f"Engine config {path} is not a JSON object, using defaults")
        return EngineConfig()

    return EngineConfig.from_dict(raw_data)
