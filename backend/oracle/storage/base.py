"""Record store interface consumed by the lifecycle coordinator."""

from typing import Protocol

from oracle.game.models import Agent, Forecast, LeaderboardEntry, LedgerAttempt, Topic


class RecordStore(Protocol):
    """Durable storage for agents, topics, forecasts and ledger outbox records.

    Getters return copies; callers persist changes with the matching save_* call.
    """

    # Agents
    def get_agent(self, agent_id: str) -> Agent | None: ...

    def get_agent_by_name(self, name: str) -> Agent | None: ...

    def get_or_create_agent(self, name: str) -> Agent: ...

    def save_agent(self, agent: Agent) -> None: ...

    # Topics
    def get_topic(self, topic_id: str) -> Topic | None: ...

    def get_topic_by_post_id(self, post_id: str) -> Topic | None: ...

    def list_open_topics(self) -> list[Topic]: ...

    def save_topic(self, topic: Topic) -> None: ...

    # Forecasts
    def get_forecast(self, forecast_id: str) -> Forecast | None: ...

    def get_forecast_by_comment_id(self, comment_id: str) -> Forecast | None: ...

    def pending_forecasts_for_topic(self, topic_id: str) -> list[Forecast]: ...

    def save_forecast(self, forecast: Forecast) -> None: ...

    # Ledger outbox
    def get_ledger_attempt(self, forecast_id: str) -> LedgerAttempt | None: ...

    def failed_ledger_attempts(self) -> list[LedgerAttempt]: ...

    def save_ledger_attempt(self, attempt: LedgerAttempt) -> None: ...

    # Queries
    def leaderboard(self, limit: int = 10) -> list[LeaderboardEntry]: ...
