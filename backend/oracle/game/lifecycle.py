"""Lifecycle coordination for topics, forecasts and agents.

State machines:
- Topic:    open -> resolved (one-shot)
- Forecast: pending -> settled_correct | settled_incorrect (terminal)

Settlement is two-phase. Phase 1 commits local state (forecast first, agent
last) and always completes. Phase 2 reports the result to the optional external
ledger; failures are recorded in the ledger outbox and returned to the caller,
never raised.
"""

from __future__ import annotations

import asyncio
import logging
from collections import defaultdict
from contextlib import asynccontextmanager
from datetime import datetime
from typing import TYPE_CHECKING, Any, AsyncIterator, Callable, Protocol, Sequence

import logfire

from oracle.config import GameConfig, LedgerConfig
from oracle.game import scorer
from oracle.game.exceptions import (
    AlreadyResolvedError,
    LedgerError,
    NotFoundError,
    OracleError,
    SettlementInProgressError,
)
from oracle.game.extractor import extract
from oracle.game.matcher import OutcomeMatcher, PolarityMatcher
from oracle.game.models import (
    Forecast,
    LeaderboardEntry,
    LedgerAttempt,
    SettlementError,
    SettlementResult,
    Topic,
    TopicSettlement,
    TopicSource,
    utc_now,
)

if TYPE_CHECKING:
    from oracle.storage.base import RecordStore

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


class LedgerConnector(Protocol):
    """External settlement connector (e.g. on-chain reward minting)."""

    async def settle_on_chain(self, external_ref: str, correct: bool) -> str:
        """Settle a prediction externally and return the transaction id."""
        ...


class LifecycleCoordinator:
    """Single writer of settlement fields on topics, forecasts and agents."""

    def __init__(
        self,
        store: RecordStore,
        matcher: OutcomeMatcher | None = None,
        ledger: LedgerConnector | None = None,
        game: GameConfig | None = None,
        ledger_config: LedgerConfig | None = None,
        clock: Clock | None = None,
    ):
        self.store = store
        self.matcher = matcher or PolarityMatcher()
        self.ledger = ledger
        self.game = game or GameConfig()
        self.ledger_config = ledger_config or LedgerConfig()
        self.clock = clock or utc_now

        # Streak counters are per-agent shared state; updates are serialized per agent.
        # A lock lives only while some settlement holds or awaits it.
        self._agent_locks: dict[str, asyncio.Lock] = {}
        self._agent_lock_users: defaultdict[str, int] = defaultdict(int)
        self._topics_in_flight: set[str] = set()

    # ========================================================================
    # Submission
    # ========================================================================

    def open_topic(
        self,
        title: str,
        *,
        description: str = "",
        category: str = "other",
        deadline: datetime | None = None,
        post_id: str | None = None,
        source: TopicSource = "generated",
        source_id: str | None = None,
        source_data: dict[str, Any] | None = None,
    ) -> Topic:
        """Record a newly published forecasting prompt."""
        topic = Topic(
            title=title,
            description=description,
            category=category,
            deadline=deadline,
            post_id=post_id,
            source=source,
            source_id=source_id,
            source_data=source_data,
            created_at=self.clock(),
        )
        self.store.save_topic(topic)
        logger.info(f"Opened topic {topic.id} [{topic.source}]: {topic.title}")
        return topic

    def record_forecast(
        self,
        author: str,
        raw_text: str,
        *,
        topic_id: str | None = None,
        post_id: str | None = None,
        comment_id: str | None = None,
        external_ref: str | None = None,
    ) -> Forecast | None:
        """Extract and store a pending forecast from a comment.

        Returns None when the comment holds no forecast. A comment that was
        already recorded returns the stored forecast unchanged.

        Raises:
            NotFoundError: topic_id does not exist.
            AlreadyResolvedError: the topic is already resolved.
        """
        if comment_id:
            existing = self.store.get_forecast_by_comment_id(comment_id)
            if existing is not None:
                logger.debug(f"Comment {comment_id} already recorded as {existing.id}")
                return existing

        topic: Topic | None = None
        if topic_id:
            topic = self.store.get_topic(topic_id)
            if topic is None:
                raise NotFoundError("Topic", topic_id)
        elif post_id:
            topic = self.store.get_topic_by_post_id(post_id)

        if topic is not None and topic.resolved:
            raise AlreadyResolvedError("Topic", topic.id)

        now = self.clock()
        parsed = extract(raw_text, now, default_confidence=self.game.default_confidence)
        if parsed is None:
            return None

        agent = self.store.get_or_create_agent(author)
        forecast = Forecast(
            agent_id=agent.id,
            topic_id=topic.id if topic else None,
            post_id=post_id or (topic.post_id if topic else None),
            comment_id=comment_id,
            claim=parsed.claim,
            outcome=parsed.outcome,
            confidence=parsed.confidence,
            category=parsed.category,
            deadline=parsed.deadline,
            external_ref=external_ref,
            created_at=now,
        )
        self.store.save_forecast(forecast)

        logger.info(f"New forecast {forecast.id} from {author}: {forecast.claim[:50]}")
        return forecast

    # ========================================================================
    # Settlement
    # ========================================================================

    async def settle_topic(
        self,
        topic_id: str,
        actual_outcome: str,
        match_terms: Sequence[str] | None = None,
    ) -> TopicSettlement:
        """Resolve a topic and settle every pending forecast bound to it.

        Process:
        1. Mark the topic resolved (outcome, timestamp and terms together)
        2. Match each pending forecast against the outcome
        3. Settle each forecast sequentially, collecting per-item errors

        Raises:
            NotFoundError: topic does not exist.
            AlreadyResolvedError: topic was resolved before.
            SettlementInProgressError: a batch for this topic is running.
        """
        if topic_id in self._topics_in_flight:
            raise SettlementInProgressError(f"Settlement already running for topic {topic_id}")

        topic = self.store.get_topic(topic_id)
        if topic is None:
            raise NotFoundError("Topic", topic_id)
        if topic.resolved:
            raise AlreadyResolvedError("Topic", topic_id)

        terms = [t.strip() for t in (match_terms or []) if t and t.strip()]

        self._topics_in_flight.add(topic_id)
        try:
            resolved = Topic.model_validate(
                {
                    **topic.model_dump(),
                    "resolved": True,
                    "actual_outcome": actual_outcome,
                    "resolved_at": self.clock(),
                    "match_terms": terms,
                }
            )
            self.store.save_topic(resolved)
            logger.info(f"Resolved topic {topic_id}: {actual_outcome}")

            return await self._settle_pending(resolved)
        finally:
            self._topics_in_flight.discard(topic_id)

    async def resume_topic(self, topic_id: str) -> TopicSettlement:
        """Settle forecasts left pending on an already resolved topic.

        Used after an interrupted batch; forecasts settled earlier are untouched.
        """
        if topic_id in self._topics_in_flight:
            raise SettlementInProgressError(f"Settlement already running for topic {topic_id}")

        topic = self.store.get_topic(topic_id)
        if topic is None:
            raise NotFoundError("Topic", topic_id)
        if not topic.resolved:
            raise OracleError(f"Topic {topic_id} is not resolved yet; settle it first")

        self._topics_in_flight.add(topic_id)
        try:
            return await self._settle_pending(topic)
        finally:
            self._topics_in_flight.discard(topic_id)

    async def _settle_pending(self, topic: Topic) -> TopicSettlement:
        settlement = TopicSettlement(
            topic_id=topic.id,
            title=topic.title,
            outcome=topic.actual_outcome or "",
        )

        pending = self.store.pending_forecasts_for_topic(topic.id)
        logger.info(f"Settling {len(pending)} pending forecasts for topic {topic.id}")

        with logfire.span("oracle.settle_topic", topic_id=topic.id, pending=len(pending)):
            for forecast in pending:
                fragment = forecast.outcome or forecast.claim
                correct = self.matcher.match(fragment, settlement.outcome, topic.match_terms)

                try:
                    result = await self.settle_forecast(forecast.id, correct)
                except (NotFoundError, AlreadyResolvedError) as e:
                    logger.warning(f"Skipping forecast {forecast.id}: {e}")
                    settlement.errors.append(
                        SettlementError(
                            forecast_id=forecast.id,
                            error_type=type(e).__name__,
                            message=str(e),
                        )
                    )
                    continue

                settlement.results.append(result)

        logger.info(
            f"Topic {topic.id} settled: {settlement.correct_count}/{settlement.total_count} correct, "
            f"{len(settlement.errors)} errors, {len(settlement.ledger_failures)} ledger failures"
        )
        return settlement

    async def settle_forecast(
        self,
        forecast_id: str,
        correct: bool,
        ledger_ref: str | None = None,
    ) -> SettlementResult:
        """Finalize one forecast and update its agent.

        The forecast is written before the agent so that a retry after a crash
        is rejected as already resolved instead of being applied twice.

        Raises:
            NotFoundError: forecast or its agent does not exist.
            AlreadyResolvedError: forecast is not pending.
        """
        forecast = self._require_pending(forecast_id)

        async with self._agent_lock(forecast.agent_id):
            # Re-read under the lock: another settlement may have finished meanwhile
            forecast = self._require_pending(forecast_id)
            agent = self.store.get_agent(forecast.agent_id)
            if agent is None:
                raise NotFoundError("Agent", forecast.agent_id)

            now = self.clock()
            breakdown = None
            if correct:
                breakdown = scorer.score(
                    forecast.confidence,
                    agent.current_streak,
                    base_reward=self.game.base_reward,
                    streak_cap=self.game.max_streak_bonus,
                    streak_step=self.game.streak_bonus_step,
                )
                reward, new_streak = breakdown.reward, breakdown.new_streak
            else:
                reward, new_streak = scorer.reset()

            settled = Forecast.model_validate(
                {
                    **forecast.model_dump(),
                    "status": "settled_correct" if correct else "settled_incorrect",
                    "settled_at": now,
                    "reward": reward,
                    "ledger_ref": ledger_ref or forecast.ledger_ref,
                }
            )
            self.store.save_forecast(settled)

            agent.total_forecasts += 1
            agent.current_streak = new_streak
            if correct:
                agent.correct_forecasts += 1
                agent.best_streak = max(agent.best_streak, new_streak)
                agent.total_reward = round(agent.total_reward + reward, 2)
            agent.updated_at = now
            self.store.save_agent(agent)

        logger.info(
            f"Settled forecast {forecast_id}: {agent.name} -> "
            f"{'CORRECT' if correct else 'INCORRECT'} +{reward:.2f} (streak {new_streak})"
        )

        result = SettlementResult(
            forecast_id=settled.id,
            topic_id=settled.topic_id,
            agent_id=agent.id,
            agent_name=agent.name,
            correct=correct,
            reward=reward,
            new_streak=new_streak,
            score=breakdown,
            settled_at=now,
            ledger_ref=settled.ledger_ref,
        )

        if self.ledger is not None and settled.external_ref and not settled.ledger_ref:
            attempt = self.store.get_ledger_attempt(settled.id) or LedgerAttempt(
                forecast_id=settled.id,
                external_ref=settled.external_ref,
                correct=correct,
            )
            attempt = await self._attempt_ledger(attempt)
            if attempt.status == "succeeded":
                result.ledger_ref = attempt.tx_id
            else:
                result.ledger_error = attempt.last_error

        return result

    @asynccontextmanager
    async def _agent_lock(self, agent_id: str) -> AsyncIterator[None]:
        lock = self._agent_locks.setdefault(agent_id, asyncio.Lock())
        self._agent_lock_users[agent_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._agent_lock_users[agent_id] -= 1
            if not self._agent_lock_users[agent_id]:
                del self._agent_lock_users[agent_id]
                del self._agent_locks[agent_id]

    def _require_pending(self, forecast_id: str) -> Forecast:
        forecast = self.store.get_forecast(forecast_id)
        if forecast is None:
            raise NotFoundError("Forecast", forecast_id)
        if not forecast.is_pending:
            raise AlreadyResolvedError("Forecast", forecast_id)
        return forecast

    # ========================================================================
    # Ledger outbox
    # ========================================================================

    async def _call_ledger(self, external_ref: str, correct: bool) -> str:
        timeout = self.ledger_config.timeout_seconds
        try:
            with logfire.span("oracle.ledger", external_ref=external_ref, correct=correct):
                return await asyncio.wait_for(
                    self.ledger.settle_on_chain(external_ref, correct),
                    timeout=timeout,
                )
        except asyncio.TimeoutError as e:
            raise LedgerError(
                f"Ledger call timed out after {timeout}s", external_ref=external_ref
            ) from e
        except LedgerError:
            raise
        except Exception as e:
            raise LedgerError(f"Ledger call failed: {e}", external_ref=external_ref) from e

    async def _attempt_ledger(self, attempt: LedgerAttempt) -> LedgerAttempt:
        """Run one ledger attempt, recording it in the outbox before and after the call."""
        attempt.attempts += 1
        attempt.status = "attempted"
        attempt.updated_at = self.clock()
        self.store.save_ledger_attempt(attempt)

        try:
            tx_id = await self._call_ledger(attempt.external_ref, attempt.correct)
        except LedgerError as e:
            attempt.status = "failed"
            attempt.last_error = str(e)
            attempt.updated_at = self.clock()
            self.store.save_ledger_attempt(attempt)
            logger.warning(
                f"Ledger settlement failed for forecast {attempt.forecast_id} "
                f"(attempt {attempt.attempts}): {e}"
            )
            return attempt

        attempt.status = "succeeded"
        attempt.tx_id = tx_id
        attempt.last_error = None
        attempt.updated_at = self.clock()
        self.store.save_ledger_attempt(attempt)

        forecast = self.store.get_forecast(attempt.forecast_id)
        if forecast is not None:
            self.store.save_forecast(forecast.model_copy(update={"ledger_ref": tx_id}))

        logger.info(f"Ledger settled forecast {attempt.forecast_id}: tx {tx_id}")
        return attempt

    async def retry_ledger(self) -> list[LedgerAttempt]:
        """Retry failed ledger settlements without touching local settlement."""
        if self.ledger is None:
            logger.info("No ledger connector configured; nothing to retry")
            return []

        retried: list[LedgerAttempt] = []
        for attempt in self.store.failed_ledger_attempts():
            if attempt.attempts >= self.ledger_config.max_attempts:
                logger.debug(
                    f"Ledger attempts exhausted for forecast {attempt.forecast_id} "
                    f"({attempt.attempts}/{self.ledger_config.max_attempts})"
                )
                continue

            forecast = self.store.get_forecast(attempt.forecast_id)
            if forecast is None:
                logger.warning(f"Ledger outbox references missing forecast {attempt.forecast_id}")
                continue

            retried.append(await self._attempt_ledger(attempt))

        return retried

    # ========================================================================
    # Queries
    # ========================================================================

    def expired_topics(self) -> list[Topic]:
        """Open topics whose deadline has passed and need resolution."""
        now = self.clock()
        return [t for t in self.store.list_open_topics() if t.is_expired(now)]

    def leaderboard(self, limit: int | None = None) -> list[LeaderboardEntry]:
        return self.store.leaderboard(limit or self.game.leaderboard_size)
