import pytest

from config import ENV_KEYS, Config


def test_environ_fallback_loads_only_service_keys(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("VOICE_BATCH_SIZE", "7")
    monkeypatch.setenv("WEBHOOK_URL", "http://example.invalid/hook")
    cfg = Config(env_file=str(tmp_path / "missing.env"))

    monkeypatch.delenv("VOICE_BATCH_SIZE")
    monkeypatch.delenv("WEBHOOK_URL")

    assert cfg.get_int("VOICE_BATCH_SIZE", 50) == 7
    assert cfg.get("WEBHOOK_URL") is None
    assert "WEBHOOK_URL" not in ENV_KEYS


def test_env_file_values_are_readable(tmp_path, monkeypatch) -> None:
    # Registers the key so the value set by the .env load is removed afterwards
    monkeypatch.setenv("VOICE_TEST_FLAG", "unset")
    monkeypatch.delenv("VOICE_TEST_FLAG")
    env_file = tmp_path / ".env"
    env_file.write_text('# comment\nVOICE_TEST_FLAG="yes"\n')

    cfg = Config(env_file=str(env_file))

    assert cfg.get_bool("VOICE_TEST_FLAG", False) is True
    assert cfg.voice_test_flag == "yes"


def test_typed_getters_fall_back_to_defaults(tmp_path, monkeypatch) -> None:
    monkeypatch.delenv("VOICE_POLL_INTERVAL_MS", raising=False)
    monkeypatch.delenv("TRANSCRIPTION_ENABLED", raising=False)
    cfg = Config(env_file=str(tmp_path / "missing.env"))

    assert cfg.get_int("VOICE_POLL_INTERVAL_MS", 2000) == 2000
    assert cfg.get_bool("TRANSCRIPTION_ENABLED", False) is False


def test_get_int_rejects_garbage(tmp_path, monkeypatch) -> None:
    monkeypatch.setenv("VOICE_TTL_MS", "half an hour")
    cfg = Config(env_file=str(tmp_path / "missing.env"))

    with pytest.raises(ValueError):
        cfg.get_int("VOICE_TTL_MS", 1)
