"""Human-readable formatting helpers for tracking output."""

from __future__ import annotations

import math


def format_elapsed(minutes: float) -> str:
    """Render elapsed minutes as ``1h5m`` or ``12m``."""
    minutes = max(0.0, minutes)
    hours = math.floor(minutes / 60)
    mins = math.floor(minutes % 60)
    if hours > 0:
        return f"{hours}h{mins}m"
    return f"{mins}m"
