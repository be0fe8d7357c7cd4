from __future__ import annotations

import statistics
from datetime import date, timedelta
from typing import Any, Dict, List, Mapping, Optional, Sequence

from scoring import PillarWeighted, ScoreStrategy, pillar_score, round_half_up

PERIODS = (7, 30)
MAX_INSIGHTS = 4


def date_range(days: int, today: Optional[date] = None) -> List[str]:
    today = today or date.today()
    return [(today - timedelta(days=i)).isoformat() for i in range(days - 1, -1, -1)]


def date_label(date_key: str, today: Optional[date] = None) -> str:
    today = today or date.today()
    if date_key == today.isoformat():
        return "Aujourd'hui"
    if date_key == (today - timedelta(days=1)).isoformat():
        return "Hier"
    try:
        return date.fromisoformat(date_key).strftime("%d/%m")
    except ValueError:
        return date_key


def evolution_history(
    entries: Mapping[str, Any],
    strategy: ScoreStrategy,
    days: int = 7,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """One point per day of the window, oldest first. Days without data score 0."""
    today = today or date.today()
    out = []
    for key in date_range(days, today):
        day = entries.get(key)
        out.append({
            "date": key,
            "label": date_label(key, today),
            "global": strategy.global_score(day) if day else 0,
            "pillars": {pid: (strategy.pillar_score(day, pid) if day else 0) for pid in strategy.pillar_ids},
        })
    return out


def score_history(
    entries: Mapping[str, Any],
    pillar_ids: Sequence[str],
    days: int = 7,
    today: Optional[date] = None,
) -> List[Dict[str, Any]]:
    """Unweighted global score per day (every pillar at 1.0)."""
    today = today or date.today()
    plain = PillarWeighted(pillar_ids)
    return [
        {"date": key, "label": date_label(key, today), "score": plain.global_score(entries.get(key))}
        for key in date_range(days, today)
    ]


def _filled(history) -> List[Dict[str, Any]]:
    return [p for p in history if p["global"] > 0]


def average_score(history) -> int:
    scores = [p["global"] for p in _filled(history)]
    return round_half_up(sum(scores) / len(scores)) if scores else 0


def trend(history) -> Dict[str, Any]:
    filled = _filled(history)
    if len(filled) < 2:
        return {"value": 0, "is_positive": True}
    diff = filled[-1]["global"] - filled[0]["global"]
    return {"value": diff, "is_positive": diff >= 0}


def best_day(history) -> Optional[Dict[str, Any]]:
    best = None
    for p in _filled(history):
        # later day wins a tie
        if best is None or p["global"] >= best["global"]:
            best = p
    if best is None:
        return None
    return {"date": best["date"], "label": best["label"], "score": best["global"]}


def _pillar_title(pillar_id: str, names: Optional[Mapping[str, str]]) -> str:
    if names and pillar_id in names:
        return names[pillar_id]
    return pillar_id[:1].upper() + pillar_id[1:]


def build_insights(
    history: Sequence[Mapping[str, Any]],
    period: int,
    names: Optional[Mapping[str, str]] = None,
) -> List[Dict[str, Any]]:
    """Short observations over the evolution window, strongest signals first."""
    global_scores = [p["global"] for p in history if p["global"] > 0]
    out: List[Dict[str, Any]] = []

    if len(global_scores) < 2:
        return [{
            "type": "suggestion",
            "title": "Commencez Votre Suivi",
            "description": "Remplissez votre journal quotidien pour recevoir des insights personnalisés.",
        }]

    change = global_scores[-1] - global_scores[0]
    if change > 5:
        out.append({
            "type": "improvement",
            "title": "Progression Positive",
            "description": f"Votre bien-être s'améliore avec un gain de {change} points sur {period} jours !",
            "value": change,
        })
    elif change < -5:
        out.append({
            "type": "decline",
            "title": "Attention Requise",
            "description": f"Votre score a baissé de {abs(change)} points. Prenez soin de vous.",
            "value": change,
        })

    top = max(global_scores)
    if top >= 80:
        out.append({
            "type": "achievement",
            "title": "Excellent Équilibre",
            "description": f"Félicitations ! Vous avez atteint {top}% de bien-être.",
            "value": top,
        })

    pillar_ids = list(history[0]["pillars"]) if history else []
    for pid in pillar_ids:
        scores = [p["pillars"].get(pid, 0) for p in history]
        scores = [s for s in scores if s > 0]
        if len(scores) < 2:
            continue
        gain = scores[-1] - scores[0]
        avg = sum(scores) / len(scores)
        title = _pillar_title(pid, names)
        if gain > 10:
            out.append({
                "type": "improvement",
                "title": f"Progrès en {title}",
                "description": f"Amélioration remarquable de {gain} points dans ce domaine.",
                "value": gain,
                "pillar": pid,
            })
        elif avg < 40:
            out.append({
                "type": "suggestion",
                "title": f"Focus sur {title}",
                "description": f"Ce pilier mériterait plus d'attention (moyenne: {round_half_up(avg)}%).",
                "value": avg,
                "pillar": pid,
            })

    if statistics.pstdev(global_scores) < 10:
        out.append({
            "type": "achievement",
            "title": "Stabilité Remarquable",
            "description": "Votre bien-être est très stable sur cette période. Continuez ainsi !",
        })

    return out[:MAX_INSIGHTS]


def coefficient_recommendations(day, pillar_ids: Sequence[str]) -> List[Dict[str, Any]]:
    if not day:
        return []
    out = []
    for pid in pillar_ids:
        score = pillar_score(day, pid)
        if score < 40:
            out.append({
                "pillar": pid,
                "suggestion": f'Augmenter l\'importance de "{pid}" (coefficient 1.3-1.5)',
                "reason": f"Score faible ({score}%) - nécessite plus d'attention",
                "suggested_coefficient": 1.4,
            })
        elif score > 90:
            out.append({
                "pillar": pid,
                "suggestion": f'Réduire l\'importance de "{pid}" (coefficient 0.8-0.9)',
                "reason": f"Score excellent ({score}%) - permet de se concentrer sur d'autres aspects",
                "suggested_coefficient": 0.8,
            })
    return out


def build_headlines(pillar_scores: Mapping[str, int], overall: int):
    items = [(pid, s) for pid, s in pillar_scores.items() if s > 0]
    items.sort(key=lambda x: x[1], reverse=True)
    top = items[:3]
    bottom = list(reversed(items[-3:]))
    return {"top": top, "bottom": bottom, "overall": overall}
