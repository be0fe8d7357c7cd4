from __future__ import annotations

from typing import Dict, Mapping, Optional, Sequence

from catalog import PillarEntry
from scoring import DEFAULT_COEFFICIENT, PillarWeighted, question_key

COEFFICIENT_MIN = 0.1
COEFFICIENT_MAX = 2.0
COEFFICIENT_STEP = 0.1

# Pillar-level presets (legacy scoring path).
PILLAR_PRESETS = {
    "default": {
        "name": "Équilibré",
        "description": "Tous les piliers ont la même importance",
        "coefficients": {
            "alimentation": 1.0, "sport": 1.0, "sommeil": 1.0,
            "stress": 1.0, "spiritualite": 1.0, "social": 1.0,
        },
    },
    "wellness": {
        "name": "Bien-être physique",
        "description": "Focus sur la santé physique",
        "coefficients": {
            "alimentation": 1.3, "sport": 1.4, "sommeil": 1.3,
            "stress": 1.1, "spiritualite": 0.8, "social": 0.9,
        },
    },
    "spiritual": {
        "name": "Développement spirituel",
        "description": "Focus sur la spiritualité et l'équilibre mental",
        "coefficients": {
            "alimentation": 1.0, "sport": 0.9, "sommeil": 1.1,
            "stress": 1.2, "spiritualite": 1.5, "social": 1.1,
        },
    },
    "productivity": {
        "name": "Productivité",
        "description": "Focus sur la performance et l'efficacité",
        "coefficients": {
            "alimentation": 1.1, "sport": 1.0, "sommeil": 1.4,
            "stress": 1.3, "spiritualite": 0.8, "social": 0.7,
        },
    },
    "social": {
        "name": "Vie sociale",
        "description": "Focus sur les relations et le bien-être social",
        "coefficients": {
            "alimentation": 1.0, "sport": 0.9, "sommeil": 1.0,
            "stress": 1.0, "spiritualite": 1.0, "social": 1.4,
        },
    },
}

# Question-level presets: one value per pillar, spread over its questions.
QUESTION_PRESETS = {
    "balanced": {
        "name": "Équilibré",
        "description": "Tous les aspects ont la même importance",
        "icon": "⚖️",
        "coefficients": {},
    },
    "health": {
        "name": "Santé Physique",
        "description": "Focus sur alimentation, sport et sommeil",
        "icon": "💪",
        "coefficients": {
            "alimentation": 1.5, "sport": 1.5, "sommeil": 1.5,
            "stress": 1.2, "spiritualite": 0.8, "social": 0.8,
        },
    },
    "wellness": {
        "name": "Bien-être Mental",
        "description": "Focus sur équilibre et spiritualité",
        "icon": "🧘",
        "coefficients": {
            "stress": 1.5, "spiritualite": 1.5, "social": 1.3,
            "sommeil": 1.2, "alimentation": 1.0, "sport": 1.0,
        },
    },
    "social": {
        "name": "Vie Sociale",
        "description": "Focus sur relations et spiritualité",
        "icon": "👥",
        "coefficients": {
            "social": 1.5, "spiritualite": 1.3, "stress": 1.2,
            "alimentation": 1.0, "sport": 1.0, "sommeil": 1.0,
        },
    },
}

IMPORTANCE_LEVELS = [
    (1.7, "Critique"),
    (1.4, "Très important"),
    (1.1, "Important"),
    (0.9, "Normal"),
    (0.6, "Secondaire"),
]


def clamp_coefficient(value) -> float:
    """For UI inputs only; scoring uses stored values as given."""
    try:
        v = float(value)
    except (TypeError, ValueError):
        return DEFAULT_COEFFICIENT
    v = max(COEFFICIENT_MIN, min(COEFFICIENT_MAX, v))
    return round(v, 1)


def importance_label(value: float) -> str:
    for threshold, label in IMPORTANCE_LEVELS:
        if value >= threshold:
            return label
    return "Minimal"


def pillar_preset(preset_key: str) -> Optional[Dict[str, float]]:
    preset = PILLAR_PRESETS.get(preset_key)
    return dict(preset["coefficients"]) if preset else None


def apply_question_preset(
    catalog: Sequence[PillarEntry],
    current: Mapping[str, float],
    preset_key: str,
) -> Dict[str, float]:
    """Every catalog question back to 1.0, then each listed pillar set to its preset value."""
    preset = QUESTION_PRESETS.get(preset_key)
    if preset is None:
        raise ValueError(f"Unknown preset: {preset_key}")
    out = dict(current)
    for entry in catalog:
        for i in range(len(entry.questions)):
            out[question_key(entry.pillar_id, i)] = DEFAULT_COEFFICIENT
    for entry in catalog:
        value = preset["coefficients"].get(entry.pillar_id)
        if value is None:
            continue
        for i in range(len(entry.questions)):
            out[question_key(entry.pillar_id, i)] = value
    return out


def set_pillar_questions(entry: PillarEntry, current: Mapping[str, float], value: float) -> Dict[str, float]:
    out = dict(current)
    for i in range(len(entry.questions)):
        out[question_key(entry.pillar_id, i)] = value
    return out


def set_coefficient(current: Mapping[str, float], key: str, value: float) -> Dict[str, float]:
    out = dict(current)
    out[key] = value
    return out


def mean_pillar_coefficient(entry: PillarEntry, coefficients: Mapping[str, float]) -> float:
    if not entry.questions:
        return DEFAULT_COEFFICIENT
    vals = [coefficients.get(question_key(entry.pillar_id, i), DEFAULT_COEFFICIENT) for i in range(len(entry.questions))]
    return sum(vals) / len(vals)


def customized_keys(coefficients: Mapping[str, float]):
    return sorted(k for k, v in coefficients.items() if v != DEFAULT_COEFFICIENT)


def simulate_score_impact(day, pillar_ids: Sequence[str], current: Mapping[str, float], candidate: Mapping[str, float]):
    """Legacy global score under the current vs. a candidate pillar coefficient map."""
    if not day:
        return {"before": 0, "after": 0, "difference": 0}
    before = PillarWeighted(pillar_ids, current).global_score(day)
    after = PillarWeighted(pillar_ids, {**current, **candidate}).global_score(day)
    return {"before": before, "after": after, "difference": after - before}
