"""End-to-end tests for the command line interface."""

from pathlib import Path

import pytest

from oracle.__main__ import main
from oracle.config import get_settings
from oracle.storage import YamlRecordStore


@pytest.fixture
def workdir(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Empty working directory with an initialized data/ folder."""
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("DATA_DIR", raising=False)
    monkeypatch.delenv("LOGFIRE_TOKEN", raising=False)
    get_settings.cache_clear()
    assert main(["init"]) == 0
    yield tmp_path
    get_settings.cache_clear()


def records(workdir: Path) -> YamlRecordStore:
    return YamlRecordStore(workdir / "data" / "records.yaml")


def test_init_creates_files(workdir: Path) -> None:
    assert (workdir / "data" / "config.yaml").exists()
    assert (workdir / "data" / "records.yaml").exists()


def test_config_command(workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["config"]) == 0
    assert "Base Reward: 100.00" in capsys.readouterr().out


def test_parse_command(workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["parse", "--text", "PREDICTION: ETH will flip BTC\\nCONFIDENCE: 9\\nCATEGORY: crypto"]) == 0

    out = capsys.readouterr().out
    assert "Confidence: 9/10" in out
    assert "Outcome: flip BTC" in out


def test_parse_without_forecast(workdir: Path) -> None:
    assert main(["parse", "--text", "just chatting"]) == 1


def test_full_round(workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["open-topic", "--title", "Will it happen?", "--deadline", "within 7 days"]) == 0
    topic = records(workdir).list_open_topics()[0]
    assert topic.deadline is not None

    for author, text in (("alice", "PREDICTION: It will happen\\nCONFIDENCE: 8"), ("bob", "PREDICTION: It will fail")):
        assert main(["submit", "--author", author, "--topic-id", topic.id, "--text", text]) == 0
    capsys.readouterr()

    assert main(["settle", topic.id, "--outcome", "Yes, it happened"]) == 0
    out = capsys.readouterr().out
    assert "**Results:** 1/2 correct predictions" in out
    assert "🥇 alice: +176.00 ORT" in out

    assert main(["settle", topic.id, "--outcome", "No"]) == 1

    assert main(["leaderboard"]) == 0
    out = capsys.readouterr().out
    assert "**alice**" in out
    assert "**bob**" in out


def test_settle_forecast_command(workdir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    assert main(["submit", "--author", "carol", "--text", "PREDICTION: Rates will fall"]) == 0
    forecast = next(iter(records(workdir).records.forecasts.values()))

    assert main(["settle-forecast", forecast.id, "--incorrect"]) == 0
    assert "carol: INCORRECT" in capsys.readouterr().out
    assert records(workdir).get_forecast(forecast.id).status == "settled_incorrect"

    assert main(["settle-forecast", forecast.id, "--correct"]) == 1


def test_unknown_topic(workdir: Path) -> None:
    assert main(["settle", "top_missing", "--outcome", "Yes"]) == 1
    assert main(["resume", "top_missing"]) == 1


def test_invalid_deadline(workdir: Path) -> None:
    assert main(["open-topic", "--title", "T", "--deadline", "someday"]) == 1
