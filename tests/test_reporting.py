from datetime import date

from reporting import (
    MAX_INSIGHTS,
    average_score,
    best_day,
    build_headlines,
    build_insights,
    coefficient_recommendations,
    date_label,
    date_range,
    evolution_history,
    score_history,
    trend,
)
from scoring import QuestionWeighted

TODAY = date(2024, 3, 15)


def _history(globals_, pillars=None):
    pillars = pillars or {}
    out = []
    for i, g in enumerate(globals_):
        out.append({
            "date": f"2024-03-{i + 1:02d}",
            "label": f"{i + 1:02d}/03",
            "global": g,
            "pillars": {pid: vals[i] for pid, vals in pillars.items()},
        })
    return out


def test_date_range_and_labels():
    keys = date_range(3, TODAY)
    assert keys == ["2024-03-13", "2024-03-14", "2024-03-15"]
    assert date_label("2024-03-15", TODAY) == "Aujourd'hui"
    assert date_label("2024-03-14", TODAY) == "Hier"
    assert date_label("2024-03-01", TODAY) == "01/03"
    assert date_label("garbage", TODAY) == "garbage"


def test_evolution_history_fills_missing_days():
    entries = {"2024-03-15": {"sport": [80]}, "2024-03-13": {"sport": [40], "sommeil": [60]}}
    history = evolution_history(entries, QuestionWeighted(["sport", "sommeil"]), days=7, today=TODAY)
    assert len(history) == 7
    assert history[0]["date"] == "2024-03-09"
    assert history[-1]["global"] == 80
    assert history[-3]["global"] == 50
    assert history[-3]["pillars"] == {"sport": 40, "sommeil": 60}
    assert history[-2]["global"] == 0
    assert history[-2]["pillars"] == {"sport": 0, "sommeil": 0}


def test_score_history_unweighted():
    entries = {"2024-03-15": {"sport": [80], "sommeil": [40]}}
    points = score_history(entries, ["sport", "sommeil"], days=2, today=TODAY)
    assert points == [
        {"date": "2024-03-14", "label": "Hier", "score": 0},
        {"date": "2024-03-15", "label": "Aujourd'hui", "score": 60},
    ]


def test_summary_figures_ignore_empty_days():
    history = _history([0, 40, 0, 70, 55])
    assert average_score(history) == 55
    assert trend(history) == {"value": 15, "is_positive": True}
    assert best_day(history)["score"] == 70


def test_summary_figures_without_data():
    history = _history([0, 0])
    assert average_score(history) == 0
    assert trend(history) == {"value": 0, "is_positive": True}
    assert best_day(history) is None


def test_best_day_tie_goes_to_later_day():
    assert best_day(_history([70, 30, 70]))["date"] == "2024-03-03"


def test_insights_need_two_days():
    insights = build_insights(_history([0, 60]), 7)
    assert [i["title"] for i in insights] == ["Commencez Votre Suivi"]


def test_insights_improvement_and_achievement():
    history = _history([50, 70, 85], {"sport": [20, 40, 60]})
    insights = build_insights(history, 7)
    kinds = [(i["type"], i["title"]) for i in insights]
    assert kinds[0] == ("improvement", "Progression Positive")
    assert ("achievement", "Excellent Équilibre") in kinds
    assert ("improvement", "Progrès en Sport") in kinds


def test_insights_decline_suggestion_and_stability():
    history = _history([50, 48, 44], {"social": [30, 35, 32]})
    insights = build_insights(history, 30, {"social": "Social ❤️"})
    titles = [i["title"] for i in insights]
    assert titles == ["Attention Requise", "Focus sur Social ❤️", "Stabilité Remarquable"]


def test_insights_capped():
    pillars = {p: [10, 50] for p in ("a", "b", "c", "d", "e")}
    insights = build_insights(_history([40, 90], pillars), 7)
    assert len(insights) == MAX_INSIGHTS


def test_coefficient_recommendations():
    day = {"sport": [20], "sommeil": [95], "social": [60]}
    recs = coefficient_recommendations(day, ["sport", "sommeil", "social"])
    assert [(r["pillar"], r["suggested_coefficient"]) for r in recs] == [("sport", 1.4), ("sommeil", 0.8)]
    assert coefficient_recommendations(None, ["sport"]) == []


def test_headlines():
    out = build_headlines({"a": 90, "b": 0, "c": 40, "d": 70}, 50)
    assert out["top"] == [("a", 90), ("d", 70), ("c", 40)]
    assert out["bottom"] == [("c", 40), ("d", 70), ("a", 90)]
    assert out["overall"] == 50
