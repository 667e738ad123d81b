import pytest

from tracklist.config import ExtractionSettings


def test_defaults(monkeypatch):
    for name in (
        "TRACKLIST_MAX_PASSES",
        "TRACKLIST_STAGNATION_THRESHOLD",
        "TRACKLIST_INITIAL_WAIT_SECONDS",
        "TRACKLIST_SETTLE_DELAY_SECONDS",
        "TRACKLIST_HEADLESS",
    ):
        monkeypatch.delenv(name, raising=False)

    settings = ExtractionSettings.from_env()
    assert settings.max_passes == 15
    assert settings.stagnation_threshold == 2
    assert settings.initial_wait_seconds == 45.0
    assert settings.settle_delay_seconds == 2.0
    assert settings.headless is True


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("TRACKLIST_MAX_PASSES", "30")
    monkeypatch.setenv("TRACKLIST_STAGNATION_THRESHOLD", "4")
    monkeypatch.setenv("TRACKLIST_SETTLE_DELAY_SECONDS", "0.5")
    monkeypatch.setenv("TRACKLIST_HEADLESS", "false")

    settings = ExtractionSettings.from_env()
    assert settings.max_passes == 30
    assert settings.stagnation_threshold == 4
    assert settings.settle_delay_seconds == 0.5
    assert settings.headless is False


@pytest.mark.parametrize("value", ["fifteen", "0", "-3"])
def test_invalid_pass_cap_rejected(monkeypatch, value):
    monkeypatch.setenv("TRACKLIST_MAX_PASSES", value)
    with pytest.raises(ValueError):
        ExtractionSettings.from_env()


def test_playlist_url():
    assert ExtractionSettings().playlist_url("abc") == "https://open.spotify.com/playlist/abc"
