"""Ensemble aggregation: confidence-weighted mean of estimator votes."""

from __future__ import annotations

import math
from typing import Iterable

from focusflow.models import EnsembleEstimate, EstimateVote

FALLBACK_MINUTES = 25  # One Pomodoro
FALLBACK_CONFIDENCE = 0.3
MAX_CONFIDENCE = 0.95


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def combine_votes(votes: Iterable[EstimateVote]) -> EnsembleEstimate:
    """Combine votes into a single estimate.

    Votes with non-positive minutes are dropped. A provider that failed with
    near-zero confidence barely moves the result; if nothing usable is left,
    the answer is a plain Pomodoro at low confidence.
    """
    usable = [v for v in votes if v.minutes > 0]
    total_weight = sum(v.confidence for v in usable)

    if not usable or total_weight <= 0:
        return EnsembleEstimate(
            minutes=FALLBACK_MINUTES,
            confidence=FALLBACK_CONFIDENCE,
            fallback=True,
        )

    weighted = sum(v.minutes * v.confidence for v in usable) / total_weight
    return EnsembleEstimate(
        minutes=max(1, round_half_up(weighted)),
        confidence=min(total_weight / len(usable), MAX_CONFIDENCE),
        providers=[v.provider for v in usable if v.confidence > 0],
    )
