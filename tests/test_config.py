from config import DEFAULT_AUTOSAVE_DELAY, load_settings


def test_defaults():
    s = load_settings(lambda key: None)
    assert s.db_path == "wellness.db"
    assert s.remote_url == ""
    assert not s.remote_enabled
    assert s.autosave_delay == DEFAULT_AUTOSAVE_DELAY


def test_values_from_lookup():
    values = {
        "WELLNESS_DB_PATH": "/tmp/w.db",
        "WELLNESS_REMOTE_URL": "https://store.example",
        "WELLNESS_USER_ID": "u1",
        "WELLNESS_REMOTE_TIMEOUT": "4.5",
        "WELLNESS_LOG_FORMAT": "TEXT",
    }
    s = load_settings(values.get)
    assert s.db_path == "/tmp/w.db"
    assert s.remote_enabled
    assert s.remote_timeout == 4.5
    assert s.log_format == "text"


def test_bad_number_falls_back():
    s = load_settings({"WELLNESS_AUTOSAVE_DELAY": "soon"}.get)
    assert s.autosave_delay == DEFAULT_AUTOSAVE_DELAY


def test_reads_environment(monkeypatch):
    monkeypatch.setenv("WELLNESS_USER_ID", "env-user")
    assert load_settings().user_id == "env-user"
