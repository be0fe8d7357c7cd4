from __future__ import annotations

import math
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

DEFAULT_COEFFICIENT = 1.0

PILLAR_WEIGHTED = "pillar"
QUESTION_WEIGHTED = "question"


def question_key(pillar_id: str, index: int) -> str:
    return f"{pillar_id}_{index}"


def round_half_up(x: float) -> int:
    # Halves go up, as the stored scores always have.
    return int(math.floor(x + 0.5))


def _as_number(v) -> Optional[float]:
    # None marks a missing position; anything that is not a number counts as 0.
    if v is None:
        return None
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        return 0.0
    n = float(v)
    if math.isnan(n) or math.isinf(n):
        return 0.0
    return n


def _coefficient(coefficients: Optional[Mapping], key: str) -> float:
    if not isinstance(coefficients, Mapping) or coefficients.get(key) is None:
        return DEFAULT_COEFFICIENT
    try:
        c = float(coefficients[key])
    except (TypeError, ValueError):
        return DEFAULT_COEFFICIENT
    if math.isnan(c) or math.isinf(c):
        return DEFAULT_COEFFICIENT
    return c


def responses(day, pillar_id: str) -> List[Tuple[int, float]]:
    """(index, value) for every present position of a pillar's array; [] when unusable."""
    if not isinstance(day, Mapping):
        return []
    raw = day.get(pillar_id)
    if not isinstance(raw, (list, tuple)):
        return []
    out = []
    for i, v in enumerate(raw):
        n = _as_number(v)
        if n is not None:
            out.append((i, n))
    return out


def pillar_average(day, pillar_id: str) -> float:
    vals = [v for _, v in responses(day, pillar_id)]
    return sum(vals) / len(vals) if vals else 0.0


def pillar_score(day, pillar_id: str) -> int:
    """Unweighted pillar score."""
    return round_half_up(pillar_average(day, pillar_id))


class ScoreStrategy:
    """Pure scoring over one day's record: ``{pillar_id: [0-100, ...]}``."""

    name = ""

    def __init__(self, pillar_ids: Iterable[str], coefficients: Optional[Mapping[str, float]] = None):
        self.pillar_ids = list(pillar_ids)
        self.coefficients = dict(coefficients or {})

    def pillar_score(self, day, pillar_id: str) -> int:
        raise NotImplementedError

    def global_score(self, day) -> int:
        raise NotImplementedError

    def pillar_scores(self, day) -> Dict[str, int]:
        return {pid: self.pillar_score(day, pid) for pid in self.pillar_ids}

    def with_coefficients(self, coefficients: Mapping[str, float]) -> "ScoreStrategy":
        return type(self)(self.pillar_ids, coefficients)


class PillarWeighted(ScoreStrategy):
    """
    Legacy pillar-level weighting.

    Global = sum(avg_p * c_p) / sum(c_p) over every catalog pillar. A pillar
    with no responses averages 0 and still counts. Pillar averages stay
    unrounded until the global division.
    """

    name = PILLAR_WEIGHTED

    def pillar_score(self, day, pillar_id: str) -> int:
        return pillar_score(day, pillar_id)

    def global_score(self, day) -> int:
        num = 0.0
        den = 0.0
        for pid in self.pillar_ids:
            c = _coefficient(self.coefficients, pid)
            num += pillar_average(day, pid) * c
            den += c
        if den == 0:
            return 0
        return round_half_up(num / den)


class QuestionWeighted(ScoreStrategy):
    """
    Question-level weighting, keyed by ``{pillar_id}_{index}``.

    The global score is one flat weighted mean over every answered question of
    every catalog pillar, not a mean of pillar scores.
    """

    name = QUESTION_WEIGHTED

    def _sums(self, day, pillar_id: str) -> Tuple[float, float]:
        num = 0.0
        den = 0.0
        for i, v in responses(day, pillar_id):
            c = _coefficient(self.coefficients, question_key(pillar_id, i))
            num += v * c
            den += c
        return num, den

    def pillar_score(self, day, pillar_id: str) -> int:
        num, den = self._sums(day, pillar_id)
        if den == 0:
            return 0
        return round_half_up(num / den)

    def global_score(self, day) -> int:
        num = 0.0
        den = 0.0
        for pid in self.pillar_ids:
            n, d = self._sums(day, pid)
            num += n
            den += d
        if den == 0:
            return 0
        return round_half_up(num / den)


def make_strategy(
    mode: str,
    pillar_ids: Sequence[str],
    pillar_coefficients: Optional[Mapping[str, float]] = None,
    question_coefficients: Optional[Mapping[str, float]] = None,
) -> ScoreStrategy:
    if mode == PILLAR_WEIGHTED:
        return PillarWeighted(pillar_ids, pillar_coefficients)
    if mode == QUESTION_WEIGHTED:
        return QuestionWeighted(pillar_ids, question_coefficients)
    raise ValueError(f"Unknown scoring mode: {mode}")
