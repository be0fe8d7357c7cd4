from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

from questions import BUILTIN_BY_ID, BUILTIN_PILLAR_IDS, BUILTIN_PILLARS, DEFAULT_QUESTIONS

DEFAULT_GLYPH = "🎯"


@dataclass
class CustomPillar:
    id: str
    name: str
    glyph: str = DEFAULT_GLYPH

    @staticmethod
    def from_dict(d: Mapping) -> "CustomPillar":
        # Stored with the legacy "emoji" field name.
        return CustomPillar(
            id=str(d.get("id", "")),
            name=str(d.get("name", "")),
            glyph=str(d.get("emoji", d.get("glyph", "")) or ""),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "emoji": self.glyph}


@dataclass
class CustomQuestion:
    id: str
    pillar_id: str
    text: str

    @staticmethod
    def from_dict(d: Mapping) -> "CustomQuestion":
        return CustomQuestion(
            id=str(d.get("id", "")),
            pillar_id=str(d.get("pillar", d.get("pillarId", "")) or ""),
            text=str(d.get("question", d.get("text", "")) or ""),
        )

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "pillar": self.pillar_id, "question": self.text}


@dataclass(frozen=True)
class PillarEntry:
    pillar_id: str
    questions: Tuple[str, ...]


# -------------------- Resolution --------------------
def _override_for(overrides: Mapping, pillar_id: str) -> Optional[List[str]]:
    if pillar_id not in overrides:
        return None
    value = overrides[pillar_id]
    if not isinstance(value, (list, tuple)):
        return None
    return [str(q) for q in value]


def resolve_catalog(
    overrides: Optional[Mapping[str, Sequence[str]]] = None,
    custom_questions: Iterable[CustomQuestion] = (),
    custom_pillars: Iterable[CustomPillar] = (),
) -> List[PillarEntry]:
    """
    Merge built-in questions, default-question overrides and custom additions.

    Order: built-in pillars (declared order), then custom pillars (creation
    order), then any pillar id referenced only by a custom question. Within a
    pillar, default/override questions come before custom questions.
    """
    overrides = overrides or {}
    merged: Dict[str, List[str]] = {}

    for pid in BUILTIN_PILLAR_IDS:
        replacement = _override_for(overrides, pid)
        merged[pid] = replacement if replacement is not None else list(DEFAULT_QUESTIONS[pid])

    for cp in custom_pillars:
        merged.setdefault(cp.id, [])

    # A question pointing at an unknown pillar still gets an entry.
    for cq in custom_questions:
        merged.setdefault(cq.pillar_id, []).append(cq.text)

    return [PillarEntry(pid, tuple(qs)) for pid, qs in merged.items()]


def catalog_pillar_ids(catalog: Sequence[PillarEntry]) -> List[str]:
    return [e.pillar_id for e in catalog]


def find_entry(catalog: Sequence[PillarEntry], pillar_id: str) -> Optional[PillarEntry]:
    for e in catalog:
        if e.pillar_id == pillar_id:
            return e
    return None


def effective_default_questions(overrides: Optional[Mapping[str, Sequence[str]]] = None) -> List[PillarEntry]:
    """Built-in pillars only, with overrides applied."""
    return resolve_catalog(overrides)[: len(BUILTIN_PILLAR_IDS)]


def pillar_display_name(pillar_id: str, custom_pillars: Iterable[CustomPillar] = ()) -> str:
    builtin = BUILTIN_BY_ID.get(pillar_id)
    if builtin:
        return f"{builtin['name']} {builtin['glyph']}"
    for cp in custom_pillars:
        if cp.id == pillar_id:
            return f"{cp.name} {cp.glyph}".strip()
    return pillar_id


def resolve_pillar_display_names(
    custom_pillars: Iterable[CustomPillar] = (),
    pillar_ids: Optional[Iterable[str]] = None,
) -> Dict[str, str]:
    custom_pillars = list(custom_pillars)
    if pillar_ids is None:
        pillar_ids = BUILTIN_PILLAR_IDS + [cp.id for cp in custom_pillars]
    return {pid: pillar_display_name(pid, custom_pillars) for pid in pillar_ids}


# -------------------- Lifecycle --------------------
def new_custom_id(existing_ids: Iterable[str], now_ms: Optional[int] = None) -> str:
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    taken = set(existing_ids)
    candidate = f"custom_{now_ms}"
    n = 1
    while candidate in taken:
        candidate = f"custom_{now_ms}_{n}"
        n += 1
    return candidate


def _check_pillar_name(name: str, custom_pillars: Sequence[CustomPillar], ignore_id: Optional[str] = None) -> str:
    name = (name or "").strip()
    if not name:
        raise ValueError("Pillar name is required")
    taken = {p["name"].lower() for p in BUILTIN_PILLARS}
    taken |= {cp.name.lower() for cp in custom_pillars if cp.id != ignore_id}
    if name.lower() in taken:
        raise ValueError(f"A pillar named {name!r} already exists")
    return name


def add_custom_pillar(
    custom_pillars: Sequence[CustomPillar],
    name: str,
    glyph: str = DEFAULT_GLYPH,
    now_ms: Optional[int] = None,
) -> Tuple[List[CustomPillar], CustomPillar]:
    name = _check_pillar_name(name, custom_pillars)
    ids = BUILTIN_PILLAR_IDS + [cp.id for cp in custom_pillars]
    created = CustomPillar(id=new_custom_id(ids, now_ms), name=name, glyph=(glyph or DEFAULT_GLYPH).strip())
    return list(custom_pillars) + [created], created


def update_custom_pillar(
    custom_pillars: Sequence[CustomPillar],
    pillar_id: str,
    *,
    name: Optional[str] = None,
    glyph: Optional[str] = None,
) -> List[CustomPillar]:
    if not any(cp.id == pillar_id for cp in custom_pillars):
        raise ValueError(f"Unknown custom pillar: {pillar_id}")
    out = []
    for cp in custom_pillars:
        if cp.id == pillar_id:
            cp = CustomPillar(
                id=cp.id,
                name=_check_pillar_name(name, custom_pillars, ignore_id=pillar_id) if name is not None else cp.name,
                glyph=glyph.strip() if glyph is not None else cp.glyph,
            )
        out.append(cp)
    return out


def delete_custom_pillar(
    custom_pillars: Sequence[CustomPillar],
    custom_questions: Sequence[CustomQuestion],
    pillar_id: str,
) -> Tuple[List[CustomPillar], List[CustomQuestion]]:
    """Remove a user-defined pillar together with every custom question attached to it."""
    if pillar_id in BUILTIN_BY_ID:
        raise ValueError("Built-in pillars cannot be deleted")
    if not any(cp.id == pillar_id for cp in custom_pillars):
        raise ValueError(f"Unknown custom pillar: {pillar_id}")
    pillars = [cp for cp in custom_pillars if cp.id != pillar_id]
    questions = [cq for cq in custom_questions if cq.pillar_id != pillar_id]
    return pillars, questions


def add_custom_question(
    custom_questions: Sequence[CustomQuestion],
    pillar_id: str,
    text: str,
    now_ms: Optional[int] = None,
) -> Tuple[List[CustomQuestion], CustomQuestion]:
    text = (text or "").strip()
    if not text or not pillar_id:
        raise ValueError("Question text and pillar are required")
    created = CustomQuestion(
        id=new_custom_id([cq.id for cq in custom_questions], now_ms),
        pillar_id=pillar_id,
        text=text,
    )
    return list(custom_questions) + [created], created


def update_custom_question(
    custom_questions: Sequence[CustomQuestion],
    question_id: str,
    *,
    text: Optional[str] = None,
    pillar_id: Optional[str] = None,
) -> List[CustomQuestion]:
    if not any(cq.id == question_id for cq in custom_questions):
        raise ValueError(f"Unknown custom question: {question_id}")
    if text is not None and not text.strip():
        raise ValueError("Question text is required")
    out = []
    for cq in custom_questions:
        if cq.id == question_id:
            cq = CustomQuestion(
                id=cq.id,
                pillar_id=pillar_id or cq.pillar_id,
                text=text.strip() if text is not None else cq.text,
            )
        out.append(cq)
    return out


def delete_custom_question(custom_questions: Sequence[CustomQuestion], question_id: str) -> List[CustomQuestion]:
    if not any(cq.id == question_id for cq in custom_questions):
        raise ValueError(f"Unknown custom question: {question_id}")
    return [cq for cq in custom_questions if cq.id != question_id]


def set_default_override(
    overrides: Mapping[str, Sequence[str]],
    pillar_id: str,
    questions: Sequence[str],
) -> Dict[str, List[str]]:
    """
    Replace a built-in pillar's whole question list.

    An empty list is a real override (the pillar then has no questions).
    A list identical to the built-in one drops the override.
    """
    if pillar_id not in BUILTIN_BY_ID:
        raise ValueError(f"Not a built-in pillar: {pillar_id}")
    cleaned = [q.strip() for q in questions if q and q.strip()]
    out = {k: list(v) for k, v in overrides.items()}
    if cleaned == DEFAULT_QUESTIONS[pillar_id]:
        out.pop(pillar_id, None)
    else:
        out[pillar_id] = cleaned
    return out


def clear_default_override(overrides: Mapping[str, Sequence[str]], pillar_id: str) -> Dict[str, List[str]]:
    return {k: list(v) for k, v in overrides.items() if k != pillar_id}
