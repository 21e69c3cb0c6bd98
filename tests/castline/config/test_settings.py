"""Tests for AppSettings and feed configuration loading."""

from datetime import timedelta
from pathlib import Path

from pydantic import ValidationError
import pytest
from pytest import MonkeyPatch
import yaml

from castline.config import AppSettings, FeedConfig
from castline.exceptions import ConfigLoadError

SAMPLE_CONFIG = {
    "feeds": {
        "show": {
            "url": "https://example.com/feed.xml",
            "aliases": "https://old.example.com/feed.xml",
            "refresh_interval": "6h",
            "import_settings": {"is_auto": True, "batch_size": 5, "taxonomy": "topics"},
        },
        "paused": {
            "url": "https://example.com/paused.xml",
            "enabled": False,
        },
    }
}


def _settings() -> AppSettings:
    return AppSettings(_cli_parse_args=False)  # type: ignore


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch: MonkeyPatch) -> Path:
    path = tmp_path / "castline.yaml"
    path.write_text(yaml.safe_dump(SAMPLE_CONFIG), encoding="utf-8")
    monkeypatch.setenv("CONFIG_FILE", str(path))
    return path


@pytest.mark.unit
def test_feeds_load_from_yaml(config_file: Path):
    settings = _settings()

    assert settings.config_file == config_file
    assert set(settings.feeds) == {"show", "paused"}
    show = settings.feeds["show"]
    assert show.aliases == ["https://old.example.com/feed.xml"]
    assert show.refresh_interval == timedelta(hours=6)
    assert show.import_settings.is_auto is True
    assert show.import_settings.batch_size == 5
    assert show.import_settings.taxonomy == "topics"
    assert settings.feeds["paused"].enabled is False
    assert settings.feeds["paused"].import_settings.is_auto is False


@pytest.mark.unit
def test_feed_for_url_matches_url_and_alias(config_file: Path):
    settings = _settings()

    assert settings.feed_for_url("https://example.com/feed.xml") is settings.feeds["show"]
    assert settings.feed_for_url("https://old.example.com/feed.xml") is settings.feeds["show"]
    assert settings.feed_for_url("https://other.example.com/") is None


@pytest.mark.unit
def test_missing_config_file_yields_no_feeds(tmp_path: Path, monkeypatch: MonkeyPatch):
    monkeypatch.setenv("CONFIG_FILE", str(tmp_path / "absent.yaml"))

    assert _settings().feeds == {}


@pytest.mark.unit
def test_invalid_yaml_raises_config_load_error(tmp_path: Path, monkeypatch: MonkeyPatch):
    path = tmp_path / "broken.yaml"
    path.write_text("feeds: [unclosed", encoding="utf-8")
    monkeypatch.setenv("CONFIG_FILE", str(path))

    with pytest.raises(ConfigLoadError) as exc:
        _settings()

    assert exc.value.config_file == str(path)


@pytest.mark.unit
def test_env_overrides_durations_and_sizes(tmp_path: Path, monkeypatch: MonkeyPatch):
    monkeypatch.setenv("CONFIG_FILE", str(tmp_path / "absent.yaml"))
    monkeypatch.setenv("QUEUE_LOCK_TTL", "45s")
    monkeypatch.setenv("REFRESH_INTERVAL", "2 days")
    monkeypatch.setenv("MEMORY_LIMIT", "1G")
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    monkeypatch.setenv("KEEP_OLD_EPISODES", "true")

    settings = _settings()

    assert settings.queue_lock_ttl == timedelta(seconds=45)
    assert settings.refresh_interval == timedelta(days=2)
    assert settings.memory_limit == 1024**3
    assert settings.keep_old is True
    assert settings.db_path == tmp_path / "db" / "castline.db"
    assert settings.images_dir == tmp_path / "images"


@pytest.mark.unit
def test_defaults(tmp_path: Path, monkeypatch: MonkeyPatch):
    monkeypatch.setenv("CONFIG_FILE", str(tmp_path / "absent.yaml"))

    settings = _settings()

    assert settings.queue_lock_ttl == timedelta(seconds=30)
    assert settings.refresh_interval == timedelta(days=1)
    assert settings.memory_limit == 1024**3
    assert settings.dispatch_mode == "local"
    assert settings.worker_secret


@pytest.mark.unit
def test_invalid_duration_is_rejected(tmp_path: Path, monkeypatch: MonkeyPatch):
    monkeypatch.setenv("CONFIG_FILE", str(tmp_path / "absent.yaml"))
    monkeypatch.setenv("QUEUE_PAUSE", "soon")

    with pytest.raises(ValidationError):
        _settings()


@pytest.mark.unit
@pytest.mark.parametrize("url", ["ftp://example.com/feed", "example.com/feed", ""])
def test_feed_config_requires_http_url(url: str):
    with pytest.raises(ValidationError):
        FeedConfig(url=url)


@pytest.mark.unit
def test_import_batch_size_bounds():
    with pytest.raises(ValidationError):
        FeedConfig.model_validate(
            {"url": "https://example.com/feed.xml", "import_settings": {"batch_size": 0}}
        )
