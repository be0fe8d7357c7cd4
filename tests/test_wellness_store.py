import json
import threading

import pytest

from catalog import catalog_pillar_ids, find_entry
from questions import BUILTIN_PILLAR_IDS
from remote_store import ENTRIES_COLLECTION, SETTINGS_COLLECTION
from scoring import PILLAR_WEIGHTED, PillarWeighted, QuestionWeighted
from wellness_store import (
    KEY_CUSTOM,
    KEY_ENTRIES,
    KEY_QUESTION_COEFFICIENTS,
    SYNC_WARNING,
    WellnessRepository,
)


def test_save_today_local_only(repo, store):
    result = repo.save_today({"sport": [50]})
    assert result.key == "2024-03-15"
    assert not result.remote_attempted
    assert result.warning is None
    assert json.loads(store.get(KEY_ENTRIES)) == {"2024-03-15": {"sport": [50]}}
    assert repo.get_day() == {"sport": [50]}


def test_today_key_reads_clock_each_time(store):
    days = iter(["2024-01-01", "2024-01-02"])
    from datetime import date

    r = WellnessRepository(store, today=lambda: date.fromisoformat(next(days)))
    assert r.today_key() == "2024-01-01"
    assert r.today_key() == "2024-01-02"


def test_save_day_rejects_bad_payload(repo):
    with pytest.raises(ValueError):
        repo.save_day(["not", "a", "mapping"])
    with pytest.raises(ValueError):
        repo.save_day({"sport": 50})


def test_save_mirrors_remote(synced_repo, mirror):
    result = synced_repo.save_today({"sport": [70]}).wait(timeout=5)
    assert result.remote_attempted and result.remote_ok
    collection, doc_id, payload = mirror.writes[0]
    assert (collection, doc_id) == (ENTRIES_COLLECTION, "u1_2024-03-15")
    assert payload["data"] == {"sport": [70]}
    assert payload["userId"] == "u1"


def test_remote_failure_keeps_local_copy(synced_repo, mirror):
    mirror.fail = True
    result = synced_repo.save_today({"sport": [70]}).wait(timeout=5)
    assert result.remote_attempted and not result.remote_ok
    assert result.warning == SYNC_WARNING
    assert synced_repo.get_day() == {"sport": [70]}
    assert synced_repo.sync_warning() == SYNC_WARNING
    assert synced_repo.sync_warning() is None


def test_local_failure_propagates(mirror):
    class BrokenStore:
        def get(self, key):
            return None

        def set(self, key, value):
            raise OSError("disk full")

    r = WellnessRepository(BrokenStore(), mirror=mirror, user_id="u1")
    with pytest.raises(OSError):
        r.save_today({"sport": [10]})
    assert mirror.writes == []


def test_unreadable_values_fall_back_to_defaults(repo, store):
    store.set(KEY_ENTRIES, "{not json")
    store.set(KEY_QUESTION_COEFFICIENTS, "[1, 2]")
    assert repo.get_entries() == {}
    assert repo.get_question_coefficients() == {}


def test_custom_question_scenario(repo):
    repo.add_custom_question("sport", "Ai-je marché 10 000 pas ?")
    sport = find_entry(repo.resolve_catalog(), "sport")
    assert sport.questions == ("Ai-je fait une séance de sport aujourd'hui ?", "Ai-je marché 10 000 pas ?")


def test_delete_custom_pillar_scenario(repo):
    pillar = repo.add_custom_pillar("Lecture", "📚")
    repo.add_custom_question(pillar.id, "Un chapitre ?")
    repo.add_custom_question(pillar.id, "Un article ?")
    assert pillar.id in catalog_pillar_ids(repo.resolve_catalog())

    repo.delete_custom_pillar(pillar.id)
    catalog = repo.resolve_catalog()
    assert pillar.id not in catalog_pillar_ids(catalog)
    texts = [q for e in catalog for q in e.questions]
    assert "Un chapitre ?" not in texts and "Un article ?" not in texts
    questions, pillars = repo.get_custom()
    assert questions == [] and pillars == []


def test_custom_layer_stored_with_legacy_fields(repo, store):
    pillar = repo.add_custom_pillar("Lecture", "📚")
    repo.add_custom_question(pillar.id, "Un chapitre ?")
    raw = json.loads(store.get(KEY_CUSTOM))
    assert raw["customPillars"] == [{"id": pillar.id, "name": "Lecture", "emoji": "📚"}]
    assert raw["customQuestions"][0]["pillar"] == pillar.id
    assert raw["customQuestions"][0]["question"] == "Un chapitre ?"


def test_default_overrides(repo):
    repo.set_default_questions("social", [])
    assert find_entry(repo.resolve_catalog(), "social").questions == ()
    repo.reset_default_questions("social")
    assert len(find_entry(repo.resolve_catalog(), "social").questions) == 3


def test_display_names_include_custom(repo):
    pillar = repo.add_custom_pillar("Lecture", "📚")
    names = repo.pillar_display_names()
    assert names[pillar.id] == "Lecture 📚"
    assert list(names)[: len(BUILTIN_PILLAR_IDS)] == BUILTIN_PILLAR_IDS


def test_strategy_built_from_persisted_state(repo):
    repo.set_question_coefficient("alimentation_0", 2.0)
    repo.set_pillar_coefficient("sport", 1.5)
    q = repo.strategy()
    assert isinstance(q, QuestionWeighted)
    assert q.pillar_score({"alimentation": [80, 60, 100]}, "alimentation") == 75
    p = repo.strategy(PILLAR_WEIGHTED)
    assert isinstance(p, PillarWeighted)
    assert p.coefficients == {"sport": 1.5}


def test_question_coefficient_presets_and_reset(repo):
    repo.apply_question_preset("health")
    assert repo.get_question_coefficients()["sport_0"] == 1.5
    repo.set_pillar_question_coefficients("social", 0.5)
    assert repo.get_question_coefficients()["social_2"] == 0.5
    repo.reset_question_coefficients()
    assert repo.get_question_coefficients() == {}


def test_pillar_presets(repo):
    repo.apply_pillar_preset("productivity")
    assert repo.get_pillar_coefficients()["sommeil"] == 1.4
    with pytest.raises(ValueError):
        repo.apply_pillar_preset("missing")
    repo.reset_pillar_coefficients()
    assert repo.get_pillar_coefficients() == {}


def test_reset_customizations(repo):
    repo.add_custom_pillar("Lecture")
    repo.set_question_coefficient("sport_0", 1.8)
    repo.reset_customizations()
    assert repo.get_custom() == ([], [])
    assert repo.get_question_coefficients() == {}


def test_settings_pushed_to_remote(synced_repo, mirror):
    synced_repo.set_question_coefficient("sport_0", 1.8)
    synced_repo.flush(timeout=5)
    collection, doc_id, payload = mirror.writes[-1]
    assert (collection, doc_id) == (SETTINGS_COLLECTION, "u1")
    assert payload["questionCoefficients"] == {"sport_0": 1.8}
    assert payload["customPillars"] == []


def test_sync_local_to_remote(store, mirror):
    local = WellnessRepository(store)
    local.save_day({"sport": [10]}, "2024-03-01")
    local.save_day({"sport": [20]}, "2024-03-02")

    synced = WellnessRepository(store, mirror=mirror, user_id="u1")
    assert synced.sync_local_to_remote() == {"pushed": 3, "failed": 0}
    assert (ENTRIES_COLLECTION, "u1_2024-03-01") in mirror.docs
    assert (SETTINGS_COLLECTION, "u1") in mirror.docs

    mirror.fail = True
    assert synced.sync_local_to_remote() == {"pushed": 0, "failed": 3}


def test_sync_requires_mirror(repo):
    with pytest.raises(RuntimeError):
        repo.sync_local_to_remote()


def test_refresh_from_remote_overwrites_local(synced_repo, mirror):
    synced_repo.save_day({"sport": [10]}, "2024-03-14").wait(timeout=5)
    mirror.docs[(ENTRIES_COLLECTION, "u1_2024-03-14")] = {"data": {"sport": [90]}}
    assert synced_repo.refresh_from_remote(["2024-03-13", "2024-03-14"]) == 1
    assert synced_repo.get_day("2024-03-14") == {"sport": [90]}


def test_refresh_settings_from_remote(synced_repo, mirror):
    mirror.docs[(SETTINGS_COLLECTION, "u1")] = {
        "coefficients": {"sport": 2.0},
        "questionCoefficients": {"sport_0": 0.5},
        "customQuestions": [{"id": "c1", "pillar": "sport", "question": "Vélo ?"}],
        "customPillars": [],
        "defaultQuestionOverrides": {"sommeil": []},
    }
    assert synced_repo.refresh_settings_from_remote()
    assert synced_repo.get_pillar_coefficients() == {"sport": 2.0}
    catalog = synced_repo.resolve_catalog()
    assert find_entry(catalog, "sport").questions[-1] == "Vélo ?"
    assert find_entry(catalog, "sommeil").questions == ()


def test_refresh_is_noop_without_mirror(repo):
    assert repo.refresh_from_remote(["2024-03-15"]) == 0
    assert repo.refresh_settings_from_remote() is False


def test_save_returns_before_slow_mirror(store, mirror):
    release = threading.Event()
    slow_persist = mirror.persist

    def persist(collection, doc_id, payload):
        release.wait(5)
        return slow_persist(collection, doc_id, payload)

    mirror.persist = persist
    r = WellnessRepository(store, mirror=mirror, user_id="u1")
    result = r.save_day({"sport": [70]}, "2024-03-15")
    assert result.remote_attempted
    assert not result.pending.done()
    assert mirror.writes == []
    assert r.get_day("2024-03-15") == {"sport": [70]}

    release.set()
    assert result.wait(timeout=5).remote_ok
    assert r.sync_warning() is None


def test_refresh_drops_malformed_remote_pillars(synced_repo, mirror):
    mirror.docs[(ENTRIES_COLLECTION, "u1_2024-03-15")] = {"data": {"sport": 50, "sommeil": [70]}}
    mirror.docs[(ENTRIES_COLLECTION, "u1_2024-03-14")] = {"data": [50, 60]}
    assert synced_repo.refresh_from_remote(["2024-03-14", "2024-03-15"]) == 1
    assert synced_repo.get_day() == {"sommeil": [70]}
    assert synced_repo.get_day("2024-03-14") is None


def test_non_mapping_day_reads_as_absent(repo, store):
    store.set(KEY_ENTRIES, json.dumps({"2024-03-15": [1, 2, 3]}))
    assert repo.get_day() is None
