from __future__ import annotations

import json
import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple

import catalog as cat
import coefficients as coef
from catalog import CustomPillar, CustomQuestion, PillarEntry
from db import now_iso
from remote_store import ENTRIES_COLLECTION, SETTINGS_COLLECTION
from scoring import QUESTION_WEIGHTED, ScoreStrategy, make_strategy

logger = logging.getLogger(__name__)

# Local storage keys
KEY_ENTRIES = "wellness-data"
KEY_PILLAR_COEFFICIENTS = "pillar-coefficients"
KEY_QUESTION_COEFFICIENTS = "question-coefficients"
KEY_CUSTOM = "custom-questions"
KEY_OVERRIDES = "modified-default-questions"

SYNC_WARNING = "Saved locally; cloud sync failed."


@dataclass
class SaveResult:
    key: str
    remote_attempted: bool = False
    remote_ok: bool = False
    warning: Optional[str] = None
    pending: Optional[Future] = field(default=None, repr=False, compare=False)

    def wait(self, timeout: Optional[float] = None) -> "SaveResult":
        """Block until the remote write settles, then fill remote_ok / warning."""
        if self.pending is not None:
            self.remote_ok = bool(self.pending.result(timeout))
            self.pending = None
            if not self.remote_ok:
                self.warning = SYNC_WARNING
        return self


def _validate_day(data) -> Dict[str, List[Any]]:
    if not isinstance(data, Mapping):
        raise ValueError("Daily responses must map pillar ids to lists")
    out = {}
    for pid, values in data.items():
        if not isinstance(values, (list, tuple)):
            raise ValueError(f"Responses for {pid!r} must be a list")
        out[str(pid)] = list(values)
    return out


def _lenient_day(data) -> Optional[Dict[str, List[Any]]]:
    # Remote copies are not trusted: pillars that are not lists are dropped.
    if not isinstance(data, Mapping):
        return None
    out = {}
    for pid, values in data.items():
        if isinstance(values, (list, tuple)):
            out[str(pid)] = list(values)
        else:
            logger.debug("dropping malformed remote responses for %s", pid)
    return out


class WellnessRepository:
    """
    Owns every persisted shape, through a storage port with get/set of strings.

    Writes go to the local store first. The optional remote mirror is then
    written from a single background worker, in submission order; a failed
    mirror write never undoes the local one and is reported through
    ``SaveResult.wait`` and ``sync_warning``.
    """

    def __init__(self, store, mirror=None, user_id: str = "", today: Optional[Callable[[], date]] = None, executor=None):
        self.store = store
        self.mirror = mirror
        self.user_id = user_id or ""
        self._today = today or date.today
        self._executor = executor
        self._lock = threading.Lock()
        self._pending: List[Future] = []
        self._failed: List[str] = []

    @property
    def mirroring(self) -> bool:
        return self.mirror is not None and bool(self.user_id)

    def today_key(self) -> str:
        # Read the local clock on every call.
        return self._today().isoformat()

    # -------------------- remote writes --------------------
    def _persist(self, collection: str, doc_id: str, payload: Dict[str, Any]) -> bool:
        try:
            ok = bool(self.mirror.persist(collection, doc_id, payload))
        except Exception:
            logger.exception("remote write crashed for %s/%s", collection, doc_id)
            ok = False
        if not ok:
            with self._lock:
                self._failed.append(f"{collection}/{doc_id}")
        return ok

    def _mirror_write(self, key: str, collection: str, doc_id: str, payload: Dict[str, Any]) -> SaveResult:
        result = SaveResult(key=key)
        if not self.mirroring:
            return result
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="remote-mirror")
        fut = self._executor.submit(self._persist, collection, doc_id, payload)
        with self._lock:
            self._pending = [f for f in self._pending if not f.done()]
            self._pending.append(fut)
        result.remote_attempted = True
        result.pending = fut
        return result

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for every queued remote write."""
        with self._lock:
            pending = list(self._pending)
        for fut in pending:
            fut.exception(timeout)

    def sync_warning(self) -> Optional[str]:
        """The soft warning for remote writes that failed since the last call, if any."""
        with self._lock:
            failed, self._failed = self._failed, []
        if not failed:
            return None
        logger.warning("remote sync failed for %s", ", ".join(failed))
        return SYNC_WARNING

    # -------------------- raw JSON --------------------
    def _load(self, key: str, default):
        raw = self.store.get(key)
        if raw is None:
            return default
        try:
            value = json.loads(raw)
        except ValueError:
            logger.warning("ignoring unreadable value under %s", key)
            return default
        if not isinstance(value, type(default)):
            logger.warning("ignoring %s: expected %s", key, type(default).__name__)
            return default
        return value

    def _dump(self, key: str, value) -> None:
        try:
            self.store.set(key, json.dumps(value, ensure_ascii=False))
        except Exception:
            logger.exception("local write failed for %s", key)
            raise

    # -------------------- daily entries --------------------
    def get_entries(self) -> Dict[str, Any]:
        return self._load(KEY_ENTRIES, {})

    def get_day(self, date_key: Optional[str] = None) -> Optional[Dict[str, Any]]:
        day = self.get_entries().get(date_key or self.today_key())
        return day if isinstance(day, dict) else None

    def save_day(self, data, date_key: Optional[str] = None) -> SaveResult:
        day = _validate_day(data)
        date_key = date_key or self.today_key()

        entries = self.get_entries()
        entries[date_key] = day
        self._dump(KEY_ENTRIES, entries)

        return self._mirror_write(date_key, ENTRIES_COLLECTION, self._entry_doc_id(date_key), self._entry_doc(date_key, day))

    def save_today(self, data) -> SaveResult:
        return self.save_day(data, None)

    def _entry_doc_id(self, date_key: str) -> str:
        return f"{self.user_id}_{date_key}"

    def _entry_doc(self, date_key: str, day: Mapping[str, Any]) -> Dict[str, Any]:
        now = now_iso()
        return {"userId": self.user_id, "date": date_key, "data": dict(day), "createdAt": now, "updatedAt": now}

    def refresh_from_remote(self, date_keys: Iterable[str]) -> int:
        """Overwrite local days with their remote copies, when present. Returns days updated."""
        if not self.mirroring:
            return 0
        self.flush()
        entries = self.get_entries()
        updated = 0
        for key in date_keys:
            doc = self.mirror.fetch(ENTRIES_COLLECTION, self._entry_doc_id(key))
            day = _lenient_day(doc.get("data")) if doc else None
            if day is None:
                continue
            entries[key] = day
            updated += 1
        if updated:
            self._dump(KEY_ENTRIES, entries)
        return updated

    # -------------------- settings --------------------
    def get_pillar_coefficients(self) -> Dict[str, float]:
        return self._load(KEY_PILLAR_COEFFICIENTS, {})

    def get_question_coefficients(self) -> Dict[str, float]:
        return self._load(KEY_QUESTION_COEFFICIENTS, {})

    def get_overrides(self) -> Dict[str, List[str]]:
        return self._load(KEY_OVERRIDES, {})

    def get_custom(self) -> Tuple[List[CustomQuestion], List[CustomPillar]]:
        raw = self._load(KEY_CUSTOM, {})
        questions = [CustomQuestion.from_dict(q) for q in raw.get("customQuestions") or [] if isinstance(q, dict)]
        pillars = [CustomPillar.from_dict(p) for p in raw.get("customPillars") or [] if isinstance(p, dict)]
        return questions, pillars

    def settings_doc(self) -> Dict[str, Any]:
        questions, pillars = self.get_custom()
        return {
            "userId": self.user_id,
            "coefficients": self.get_pillar_coefficients(),
            "questionCoefficients": self.get_question_coefficients(),
            "customQuestions": [q.to_dict() for q in questions],
            "customPillars": [p.to_dict() for p in pillars],
            "defaultQuestionOverrides": self.get_overrides(),
            "updatedAt": now_iso(),
        }

    def _push_settings(self, key: str) -> SaveResult:
        return self._mirror_write(key, SETTINGS_COLLECTION, self.user_id, self.settings_doc())

    def save_pillar_coefficients(self, coefficients: Mapping[str, float]) -> SaveResult:
        self._dump(KEY_PILLAR_COEFFICIENTS, dict(coefficients))
        return self._push_settings(KEY_PILLAR_COEFFICIENTS)

    def save_question_coefficients(self, coefficients: Mapping[str, float]) -> SaveResult:
        self._dump(KEY_QUESTION_COEFFICIENTS, dict(coefficients))
        return self._push_settings(KEY_QUESTION_COEFFICIENTS)

    def save_overrides(self, overrides: Mapping[str, Sequence[str]]) -> SaveResult:
        self._dump(KEY_OVERRIDES, {k: list(v) for k, v in overrides.items()})
        return self._push_settings(KEY_OVERRIDES)

    def save_custom(self, questions: Sequence[CustomQuestion], pillars: Sequence[CustomPillar]) -> SaveResult:
        self._dump(KEY_CUSTOM, {
            "customQuestions": [q.to_dict() for q in questions],
            "customPillars": [p.to_dict() for p in pillars],
        })
        return self._push_settings(KEY_CUSTOM)

    def refresh_settings_from_remote(self) -> bool:
        if not self.mirroring:
            return False
        self.flush()
        doc = self.mirror.fetch(SETTINGS_COLLECTION, self.user_id)
        if not doc:
            return False
        if isinstance(doc.get("coefficients"), dict):
            self._dump(KEY_PILLAR_COEFFICIENTS, doc["coefficients"])
        if isinstance(doc.get("questionCoefficients"), dict):
            self._dump(KEY_QUESTION_COEFFICIENTS, doc["questionCoefficients"])
        if isinstance(doc.get("defaultQuestionOverrides"), dict):
            self._dump(KEY_OVERRIDES, doc["defaultQuestionOverrides"])
        if isinstance(doc.get("customQuestions"), list) or isinstance(doc.get("customPillars"), list):
            self._dump(KEY_CUSTOM, {
                "customQuestions": doc.get("customQuestions") or [],
                "customPillars": doc.get("customPillars") or [],
            })
        return True

    def sync_local_to_remote(self) -> Dict[str, int]:
        """Push every stored day and the settings document to the mirror."""
        if not self.mirroring:
            raise RuntimeError("Remote mirroring is not configured")
        self.flush()
        pushed = failed = 0
        for key, day in sorted(self.get_entries().items()):
            if not isinstance(day, dict):
                continue
            if self.mirror.persist(ENTRIES_COLLECTION, self._entry_doc_id(key), self._entry_doc(key, day)):
                pushed += 1
            else:
                failed += 1
        if self.mirror.persist(SETTINGS_COLLECTION, self.user_id, self.settings_doc()):
            pushed += 1
        else:
            failed += 1
        logger.info("local to remote sync: %d pushed, %d failed", pushed, failed)
        return {"pushed": pushed, "failed": failed}

    # -------------------- catalog --------------------
    def resolve_catalog(self) -> List[PillarEntry]:
        questions, pillars = self.get_custom()
        return cat.resolve_catalog(self.get_overrides(), questions, pillars)

    def pillar_display_names(self) -> Dict[str, str]:
        _, pillars = self.get_custom()
        ids = cat.catalog_pillar_ids(self.resolve_catalog())
        return cat.resolve_pillar_display_names(pillars, ids)

    def strategy(self, mode: str = QUESTION_WEIGHTED) -> ScoreStrategy:
        ids = cat.catalog_pillar_ids(self.resolve_catalog())
        return make_strategy(mode, ids, self.get_pillar_coefficients(), self.get_question_coefficients())

    # -------------------- questionnaire edits --------------------
    def add_custom_pillar(self, name: str, glyph: str = cat.DEFAULT_GLYPH) -> CustomPillar:
        questions, pillars = self.get_custom()
        pillars, created = cat.add_custom_pillar(pillars, name, glyph)
        self.save_custom(questions, pillars)
        return created

    def update_custom_pillar(self, pillar_id: str, *, name: Optional[str] = None, glyph: Optional[str] = None) -> SaveResult:
        questions, pillars = self.get_custom()
        return self.save_custom(questions, cat.update_custom_pillar(pillars, pillar_id, name=name, glyph=glyph))

    def delete_custom_pillar(self, pillar_id: str) -> SaveResult:
        questions, pillars = self.get_custom()
        pillars, questions = cat.delete_custom_pillar(pillars, questions, pillar_id)
        return self.save_custom(questions, pillars)

    def add_custom_question(self, pillar_id: str, text: str) -> CustomQuestion:
        questions, pillars = self.get_custom()
        questions, created = cat.add_custom_question(questions, pillar_id, text)
        self.save_custom(questions, pillars)
        return created

    def update_custom_question(self, question_id: str, *, text: Optional[str] = None, pillar_id: Optional[str] = None) -> SaveResult:
        questions, pillars = self.get_custom()
        return self.save_custom(cat.update_custom_question(questions, question_id, text=text, pillar_id=pillar_id), pillars)

    def delete_custom_question(self, question_id: str) -> SaveResult:
        questions, pillars = self.get_custom()
        return self.save_custom(cat.delete_custom_question(questions, question_id), pillars)

    def set_default_questions(self, pillar_id: str, questions: Sequence[str]) -> SaveResult:
        return self.save_overrides(cat.set_default_override(self.get_overrides(), pillar_id, questions))

    def reset_default_questions(self, pillar_id: Optional[str] = None) -> SaveResult:
        if pillar_id is None:
            return self.save_overrides({})
        return self.save_overrides(cat.clear_default_override(self.get_overrides(), pillar_id))

    def reset_customizations(self) -> SaveResult:
        """Drop custom pillars and questions and every question coefficient."""
        self._dump(KEY_QUESTION_COEFFICIENTS, {})
        return self.save_custom([], [])

    # -------------------- coefficients --------------------
    def set_question_coefficient(self, key: str, value: float) -> SaveResult:
        return self.save_question_coefficients(coef.set_coefficient(self.get_question_coefficients(), key, value))

    def apply_question_preset(self, preset_key: str) -> SaveResult:
        updated = coef.apply_question_preset(self.resolve_catalog(), self.get_question_coefficients(), preset_key)
        return self.save_question_coefficients(updated)

    def set_pillar_question_coefficients(self, pillar_id: str, value: float) -> SaveResult:
        entry = cat.find_entry(self.resolve_catalog(), pillar_id)
        if entry is None:
            raise ValueError(f"Unknown pillar: {pillar_id}")
        return self.save_question_coefficients(coef.set_pillar_questions(entry, self.get_question_coefficients(), value))

    def reset_question_coefficients(self) -> SaveResult:
        return self.save_question_coefficients({})

    def set_pillar_coefficient(self, pillar_id: str, value: float) -> SaveResult:
        return self.save_pillar_coefficients(coef.set_coefficient(self.get_pillar_coefficients(), pillar_id, value))

    def apply_pillar_preset(self, preset_key: str) -> SaveResult:
        preset = coef.pillar_preset(preset_key)
        if preset is None:
            raise ValueError(f"Unknown preset: {preset_key}")
        return self.save_pillar_coefficients(preset)

    def reset_pillar_coefficients(self) -> SaveResult:
        return self.save_pillar_coefficients({})
