"""Tests for the in-memory and YAML record stores."""

from datetime import timedelta
from pathlib import Path

import pytest
import yaml

from oracle.game.lifecycle import LifecycleCoordinator
from oracle.game.models import Forecast, LedgerAttempt, Topic
from oracle.storage import InMemoryRecordStore, Records, YamlRecordStore, load_records, save_records


class TestInMemoryRecordStore:
    """Tests for InMemoryRecordStore."""

    def test_reads_are_copies(self, store: InMemoryRecordStore) -> None:
        agent = store.get_or_create_agent("alice")
        agent.current_streak = 7

        assert store.get_agent(agent.id).current_streak == 0

    def test_writes_are_copies(self, store: InMemoryRecordStore) -> None:
        topic = Topic(title="T", match_terms=["a"])
        store.save_topic(topic)
        topic.match_terms.append("b")

        assert store.get_topic(topic.id).match_terms == ["a"]

    def test_get_or_create_agent_is_idempotent(self, store: InMemoryRecordStore) -> None:
        first = store.get_or_create_agent("alice")
        second = store.get_or_create_agent("alice")

        assert first.id == second.id
        assert len(store.records.agents) == 1

    def test_missing_records(self, store: InMemoryRecordStore) -> None:
        assert store.get_agent("agt_missing") is None
        assert store.get_topic("top_missing") is None
        assert store.get_forecast("fct_missing") is None
        assert store.get_ledger_attempt("fct_missing") is None
        assert store.get_topic_by_post_id("post_missing") is None
        assert store.get_forecast_by_comment_id("c_missing") is None

    def test_open_topics_newest_first(self, store: InMemoryRecordStore, now) -> None:
        old = Topic(title="old", created_at=now - timedelta(days=2))
        new = Topic(title="new", created_at=now)
        done = Topic(title="done", created_at=now, resolved=True, actual_outcome="Yes", resolved_at=now)
        for topic in (old, new, done):
            store.save_topic(topic)

        assert [t.title for t in store.list_open_topics()] == ["new", "old"]

    def test_pending_forecasts_oldest_first(self, store: InMemoryRecordStore, now) -> None:
        later = Forecast(agent_id="a", topic_id="t", claim="c", outcome="o", created_at=now)
        earlier = Forecast(
            agent_id="a", topic_id="t", claim="c", outcome="o", created_at=now - timedelta(hours=1)
        )
        settled = Forecast(
            agent_id="a",
            topic_id="t",
            claim="c",
            outcome="o",
            status="settled_correct",
            settled_at=now,
        )
        other_topic = Forecast(agent_id="a", topic_id="x", claim="c", outcome="o")
        for forecast in (later, earlier, settled, other_topic):
            store.save_forecast(forecast)

        assert [f.id for f in store.pending_forecasts_for_topic("t")] == [earlier.id, later.id]

    def test_failed_ledger_attempts(self, store: InMemoryRecordStore) -> None:
        for forecast_id, status in (("f1", "failed"), ("f2", "succeeded")):
            store.save_ledger_attempt(
                LedgerAttempt(forecast_id=forecast_id, external_ref="0x1", correct=True, status=status)
            )

        assert [a.forecast_id for a in store.failed_ledger_attempts()] == ["f1"]


class TestYamlRecordStore:
    """Tests for YAML persistence."""

    def test_missing_file_gives_empty_records(self, tmp_path: Path) -> None:
        records = load_records(tmp_path / "records.yaml")
        assert records == Records()

    def test_empty_file_gives_empty_records(self, tmp_path: Path) -> None:
        path = tmp_path / "records.yaml"
        path.write_text("")
        assert load_records(path) == Records()

    def test_every_write_is_persisted(self, tmp_path: Path, now) -> None:
        path = tmp_path / "nested" / "records.yaml"
        store = YamlRecordStore(path)

        agent = store.get_or_create_agent("alice")
        topic = Topic(title="Will it rain?", deadline=now, category="science")
        store.save_topic(topic)
        forecast = Forecast(agent_id=agent.id, topic_id=topic.id, claim="It will rain", outcome="rain")
        store.save_forecast(forecast)

        reloaded = YamlRecordStore(path)
        assert reloaded.get_agent(agent.id).name == "alice"
        assert reloaded.get_topic(topic.id).deadline == now
        assert reloaded.get_topic(topic.id).category == "science"
        assert reloaded.get_forecast(forecast.id) == forecast

    def test_file_is_plain_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "records.yaml"
        records = Records()
        topic = Topic(title="T")
        records.topics[topic.id] = topic

        save_records(records, path)

        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert raw["topics"][topic.id]["title"] == "T"
        assert list(tmp_path.iterdir()) == [path]

    def test_corrupted_file_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "records.yaml"
        path.write_text("agents: [unclosed")

        with pytest.raises(yaml.YAMLError):
            load_records(path)

    @pytest.mark.asyncio
    async def test_settlement_survives_reload(self, tmp_path: Path, clock) -> None:
        path = tmp_path / "records.yaml"
        coordinator = LifecycleCoordinator(store=YamlRecordStore(path), clock=clock)
        topic = coordinator.open_topic("Will it happen?")
        forecast = coordinator.record_forecast("alice", "PREDICTION: It will happen", topic_id=topic.id)
        await coordinator.settle_topic(topic.id, "Yes")

        reloaded = YamlRecordStore(path)
        assert reloaded.get_topic(topic.id).resolved is True
        assert reloaded.get_forecast(forecast.id).status == "settled_correct"
        assert reloaded.get_agent_by_name("alice").correct_forecasts == 1
