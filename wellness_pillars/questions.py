# Built-in pillars and their default questions.
# Keep IDs stable: stored responses and coefficients are keyed by them.

def pillar(pid, name, glyph, color):
    return {"id": pid, "name": name, "glyph": glyph, "color": color}

BUILTIN_PILLARS = [
    pillar("alimentation", "Alimentation", "🥗", "#10B981"),
    pillar("sport", "Sport", "💪", "#F59E0B"),
    pillar("sommeil", "Sommeil", "😴", "#8B5CF6"),
    pillar("stress", "Stress / Équilibre", "🧘", "#3B82F6"),
    pillar("spiritualite", "Spiritualité", "🕌", "#EF4444"),
    pillar("social", "Social", "❤️", "#EC4899"),
]

BUILTIN_PILLAR_IDS = [p["id"] for p in BUILTIN_PILLARS]
BUILTIN_BY_ID = {p["id"]: p for p in BUILTIN_PILLARS}

# Fallback colour for user-defined pillars in charts.
CUSTOM_PILLAR_COLOR = "#6B7280"

DEFAULT_QUESTIONS = {
    "alimentation": [
        "Ai-je évité le sucre, le pain blanc et les aliments transformés ?",
        "Ai-je consommé suffisamment de légumes, fruits et de l'eau ?",
        "Ai-je consommé assez de protéines aujourd'hui ?",
    ],
    "sport": [
        "Ai-je fait une séance de sport aujourd'hui ?",
    ],
    "sommeil": [
        "Ai-je bien dormi (quantité et qualité) ?",
    ],
    "stress": [
        "Ai-je bien géré mon temps d'écran ?",
        "Ai-je protégé mes 5 sens (langue, yeux, pensées, etc.) ?",
    ],
    "spiritualite": [
        "Ai-je accompli mes 5 prières à l'heure, dont 3 en groupe ?",
        "Ai-je respecté mon programme de Coran (lecture, mémorisation) ?",
        "Ai-je récité les doâs du matin et du soir ?",
    ],
    "social": [
        "Ai-je été utile à ma famille ou mon entourage ?",
        "Ai-je aidé quelqu'un aujourd'hui (même petit geste) ?",
        "Ai-je été bienveillant dans mes interactions ?",
    ],
}


def default_questions(pillar_id):
    """Fresh copy of a built-in pillar's question list (empty for unknown ids)."""
    return list(DEFAULT_QUESTIONS.get(pillar_id, []))


def pillar_color(pillar_id):
    p = BUILTIN_BY_ID.get(pillar_id)
    return p["color"] if p else CUSTOM_PILLAR_COLOR
