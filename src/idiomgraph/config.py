"""Configuration loaded from environment variables."""

from __future__ import annotations

import os

from dotenv import load_dotenv

load_dotenv()


def _float(name: str, default: float) -> float:
    val = os.getenv(name)
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be a number, got {val!r}") from None


# Recognition
CONFIDENCE_THRESHOLD: float = _float("IDIOMGRAPH_CONFIDENCE_THRESHOLD", 0.6)
CONTEXT_RADIUS: int = int(os.getenv("IDIOMGRAPH_CONTEXT_RADIUS", "50"))

# Layout
NODE_SPACING: float = _float("IDIOMGRAPH_NODE_SPACING", 150.0)
LEVEL_SPACING: float = _float("IDIOMGRAPH_LEVEL_SPACING", 200.0)
LAYOUT_PADDING: int = int(os.getenv("IDIOMGRAPH_LAYOUT_PADDING", "50"))

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
