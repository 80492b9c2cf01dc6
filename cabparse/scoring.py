"""Coarse structural complexity indicator."""

from __future__ import annotations

from typing import Sized

from .config import COMPLEXITY_CAP, COMPLEXITY_WEIGHTS


def complexity_score(parts: Sized, parameters: Sized, constraints: Sized) -> int:
    """Weighted entity count clamped to ``[0, 100]``. Not a correctness signal."""
    score = (
        COMPLEXITY_WEIGHTS["parts"] * len(parts)
        + COMPLEXITY_WEIGHTS["parameters"] * len(parameters)
        + COMPLEXITY_WEIGHTS["constraints"] * len(constraints)
    )
    return max(0, min(score, COMPLEXITY_CAP))
