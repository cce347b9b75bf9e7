"""In-process record store."""

import logging

from pydantic import BaseModel, Field

from oracle.game.models import Agent, Forecast, LeaderboardEntry, LedgerAttempt, Topic

logger = logging.getLogger(__name__)


class Records(BaseModel):
    """Complete record set - matches data/records.yaml schema."""

    agents: dict[str, Agent] = Field(default_factory=dict)
    topics: dict[str, Topic] = Field(default_factory=dict)
    forecasts: dict[str, Forecast] = Field(default_factory=dict)
    ledger_attempts: dict[str, LedgerAttempt] = Field(default_factory=dict)


class InMemoryRecordStore:
    """Dict-backed RecordStore. Reads and writes copy records so callers never alias stored state."""

    def __init__(self, records: Records | None = None):
        self.records = records or Records()

    def _changed(self) -> None:
        """Hook for persistent subclasses, called after every write."""

    # ------------------------------------------------------------------
    # Agents
    # ------------------------------------------------------------------

    def get_agent(self, agent_id: str) -> Agent | None:
        agent = self.records.agents.get(agent_id)
        return agent.model_copy(deep=True) if agent else None

    def get_agent_by_name(self, name: str) -> Agent | None:
        for agent in self.records.agents.values():
            if agent.name == name:
                return agent.model_copy(deep=True)
        return None

    def get_or_create_agent(self, name: str) -> Agent:
        agent = self.get_agent_by_name(name)
        if agent is not None:
            return agent

        agent = Agent(name=name)
        self.save_agent(agent)
        logger.info(f"Registered new agent: {name} ({agent.id})")
        return agent.model_copy(deep=True)

    def save_agent(self, agent: Agent) -> None:
        self.records.agents[agent.id] = agent.model_copy(deep=True)
        self._changed()

    # ------------------------------------------------------------------
    # Topics
    # ------------------------------------------------------------------

    def get_topic(self, topic_id: str) -> Topic | None:
        topic = self.records.topics.get(topic_id)
        return topic.model_copy(deep=True) if topic else None

    def get_topic_by_post_id(self, post_id: str) -> Topic | None:
        for topic in self.records.topics.values():
            if topic.post_id == post_id:
                return topic.model_copy(deep=True)
        return None

    def list_open_topics(self) -> list[Topic]:
        topics = [t for t in self.records.topics.values() if not t.resolved]
        topics.sort(key=lambda t: t.created_at, reverse=True)
        return [t.model_copy(deep=True) for t in topics]

    def save_topic(self, topic: Topic) -> None:
        self.records.topics[topic.id] = topic.model_copy(deep=True)
        self._changed()

    # ------------------------------------------------------------------
    # Forecasts
    # ------------------------------------------------------------------

    def get_forecast(self, forecast_id: str) -> Forecast | None:
        forecast = self.records.forecasts.get(forecast_id)
        return forecast.model_copy(deep=True) if forecast else None

    def get_forecast_by_comment_id(self, comment_id: str) -> Forecast | None:
        for forecast in self.records.forecasts.values():
            if forecast.comment_id == comment_id:
                return forecast.model_copy(deep=True)
        return None

    def pending_forecasts_for_topic(self, topic_id: str) -> list[Forecast]:
        forecasts = [
            f
            for f in self.records.forecasts.values()
            if f.topic_id == topic_id and f.is_pending
        ]
        forecasts.sort(key=lambda f: f.created_at)
        return [f.model_copy(deep=True) for f in forecasts]

    def save_forecast(self, forecast: Forecast) -> None:
        self.records.forecasts[forecast.id] = forecast.model_copy(deep=True)
        self._changed()

    # ------------------------------------------------------------------
    # Ledger outbox
    # ------------------------------------------------------------------

    def get_ledger_attempt(self, forecast_id: str) -> LedgerAttempt | None:
        attempt = self.records.ledger_attempts.get(forecast_id)
        return attempt.model_copy(deep=True) if attempt else None

    def failed_ledger_attempts(self) -> list[LedgerAttempt]:
        attempts = [a for a in self.records.ledger_attempts.values() if a.status == "failed"]
        attempts.sort(key=lambda a: a.updated_at)
        return [a.model_copy(deep=True) for a in attempts]

    def save_ledger_attempt(self, attempt: LedgerAttempt) -> None:
        self.records.ledger_attempts[attempt.forecast_id] = attempt.model_copy(deep=True)
        self._changed()

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def leaderboard(self, limit: int = 10) -> list[LeaderboardEntry]:
        """Top agents by correct count, then accuracy. Agents without forecasts are excluded."""
        entries = [
            LeaderboardEntry.from_agent(agent)
            for agent in self.records.agents.values()
            if agent.total_forecasts > 0
        ]
        entries.sort(key=lambda e: (e.correct_forecasts, e.accuracy), reverse=True)
        return entries[:limit]
