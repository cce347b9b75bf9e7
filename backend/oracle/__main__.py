"""Oracle CLI entry point."""

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError

env_file = Path(__file__).parent.parent / ".env"
load_dotenv(env_file)

from oracle import __version__
from oracle.config import Settings, get_settings
from oracle.game import announcements
from oracle.game.deadlines import resolve
from oracle.game.exceptions import OracleError, ParseError
from oracle.game.extractor import extract, format_forecast_summary
from oracle.game.lifecycle import LifecycleCoordinator
from oracle.game.models import TopicSettlement
from oracle.storage import Records, YamlRecordStore, save_records

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger(__name__)

CONFIG_TEMPLATE = """# Oracle Challenge Configuration
# Game parameters for forecast scoring and settlement.
# Secrets (LOGFIRE_TOKEN) belong in .env, not here.

game:
  base_reward: 100.0
  max_streak_bonus: 2.0
  streak_bonus_step: 0.1
  default_confidence: 5
  leaderboard_size: 10

ledger:
  timeout_seconds: 30.0
  max_attempts: 3
"""


def _init_logfire() -> None:
    """Initialize Logfire if available, without failing commands."""
    try:
        from oracle.observability import initialize_logfire

        initialize_logfire(get_settings())
    except Exception as e:
        logger.warning(f"Failed to initialize Logfire: {e}")


def _build_coordinator(settings: Settings) -> LifecycleCoordinator:
    return LifecycleCoordinator(
        store=YamlRecordStore(settings.records_path),
        game=settings.game,
        ledger_config=settings.ledger,
    )


def _read_text(args: argparse.Namespace) -> str:
    if getattr(args, "file", None):
        return Path(args.file).read_text(encoding="utf-8")
    if args.text:
        return args.text.replace("\\n", "\n")
    return sys.stdin.read()


def cmd_init(args: argparse.Namespace) -> int:
    """Initialize data directory and configuration files."""
    data_dir = Path("data").resolve()

    try:
        data_dir.mkdir(exist_ok=True)
        logger.info(f"Created data directory: {data_dir}")

        config_path = data_dir / "config.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_TEMPLATE, encoding="utf-8")
            logger.info(f"Created config template: {config_path}")
        else:
            logger.info(f"Config file already exists: {config_path}")

        records_path = data_dir / "records.yaml"
        if not records_path.exists():
            save_records(Records(), records_path)
            logger.info(f"Created empty record store: {records_path}")
        else:
            logger.info(f"Record store already exists: {records_path}")

        print(f"\n✓ Data directory initialized at {data_dir}")
        print("\nNext steps:")
        print("1. Review and customize data/config.yaml if needed")
        print("2. Run 'python -m oracle config' to verify configuration")
        print("3. Run 'python -m oracle open-topic --title ...' to publish a topic\n")
        return 0

    except Exception as e:
        logger.error(f"Failed to initialize: {e}")
        print(f"\n❌ Initialization failed: {e}\n")
        return 1


def cmd_config(args: argparse.Namespace) -> int:
    """Display merged configuration."""
    try:
        settings = get_settings()

        print("\n=== Oracle Configuration ===\n")
        print(f"Data Directory: {settings.data_dir}\n")

        print("Game:")
        print(f"  Base Reward: {settings.game.base_reward:,.2f}")
        print(f"  Max Streak Bonus: {settings.game.max_streak_bonus}x")
        print(f"  Streak Bonus Step: {settings.game.streak_bonus_step}")
        print(f"  Default Confidence: {settings.game.default_confidence}")
        print(f"  Leaderboard Size: {settings.game.leaderboard_size}\n")

        print("Ledger:")
        print(f"  Timeout: {settings.ledger.timeout_seconds}s")
        print(f"  Max Attempts: {settings.ledger.max_attempts}\n")

        print("API Keys:")
        print(f"  Logfire: {'✓ Set' if settings.logfire_token else '✗ Not set'}\n")
        return 0

    except ValidationError as e:
        print("\n❌ Configuration Error:\n")
        for error in e.errors():
            print(f"  • {'.'.join(str(x) for x in error['loc'])}: {error['msg']}")
        print()
        return 1
    except Exception as e:
        logger.error(f"Failed to load config: {e}")
        print(f"\n❌ Failed to load configuration: {e}\n")
        return 1


def cmd_parse(args: argparse.Namespace) -> int:
    """Extract a forecast from comment text without storing it."""
    settings = get_settings()
    parsed = extract(
        _read_text(args),
        datetime.now(timezone.utc),
        default_confidence=settings.game.default_confidence,
    )

    if parsed is None:
        print("\nNo forecast found (missing PREDICTION: line)\n")
        return 1

    print(f"\n{format_forecast_summary(parsed)}\n")
    print(f"Outcome: {parsed.outcome}")
    print(f"Deadline: {parsed.deadline.isoformat() if parsed.deadline else 'unspecified'}\n")
    return 0


def cmd_open_topic(args: argparse.Namespace) -> int:
    """Record a published forecasting topic."""
    try:
        deadline = None
        if args.deadline:
            deadline = resolve(args.deadline, datetime.now(timezone.utc))

        coordinator = _build_coordinator(get_settings())
        topic = coordinator.open_topic(
            args.title,
            description=args.description,
            category=args.category,
            deadline=deadline,
            post_id=args.post_id,
        )

        print(f"\n✓ Opened topic {topic.id}")
        print(f"  Category: {topic.category}")
        print(f"  Deadline: {topic.deadline.isoformat() if topic.deadline else 'none'}\n")
        return 0

    except ParseError as e:
        print(f"\n❌ {e}\n")
        return 1
    except Exception as e:
        logger.error(f"Failed to open topic: {e}", exc_info=True)
        print(f"\n❌ Failed to open topic: {e}\n")
        return 1


def cmd_submit(args: argparse.Namespace) -> int:
    """Record a forecast comment from an agent."""
    try:
        coordinator = _build_coordinator(get_settings())
        forecast = coordinator.record_forecast(
            args.author,
            _read_text(args),
            topic_id=args.topic_id,
            comment_id=args.comment_id,
        )

        if forecast is None:
            print("\nNo forecast found in comment; nothing recorded\n")
            return 1

        print(f"\n✓ Recorded forecast {forecast.id} ({forecast.status})")
        print(f"  Outcome: {forecast.outcome}")
        print(f"  Confidence: {forecast.confidence}/10\n")
        return 0

    except OracleError as e:
        print(f"\n❌ {e}\n")
        return 1


def _print_settlement(settlement: TopicSettlement) -> None:
    print(f"\n{announcements.format_resolution_announcement(settlement)}\n")

    if settlement.errors:
        print(f"Errors ({len(settlement.errors)}):")
        for error in settlement.errors:
            print(f"  • {error.forecast_id}: {error.error_type} - {error.message}")
        print()

    failures = settlement.ledger_failures
    if failures:
        print(f"Ledger failures ({len(failures)}) - retry later:")
        for result in failures:
            print(f"  • {result.forecast_id}: {result.ledger_error}")
        print()


def cmd_settle(args: argparse.Namespace) -> int:
    """Resolve a topic and settle its pending forecasts."""
    _init_logfire()

    try:
        coordinator = _build_coordinator(get_settings())
        settlement = asyncio.run(
            coordinator.settle_topic(args.topic_id, args.outcome, args.match or [])
        )
        _print_settlement(settlement)
        return 0

    except OracleError as e:
        print(f"\n❌ {e}\n")
        return 1


def cmd_resume(args: argparse.Namespace) -> int:
    """Finish an interrupted topic settlement."""
    _init_logfire()

    try:
        coordinator = _build_coordinator(get_settings())
        settlement = asyncio.run(coordinator.resume_topic(args.topic_id))
        _print_settlement(settlement)
        return 0

    except OracleError as e:
        print(f"\n❌ {e}\n")
        return 1


def cmd_settle_forecast(args: argparse.Namespace) -> int:
    """Settle a single forecast manually."""
    try:
        coordinator = _build_coordinator(get_settings())
        result = asyncio.run(
            coordinator.settle_forecast(args.forecast_id, args.correct, ledger_ref=args.ledger_ref)
        )

        print(f"\n✓ {result.agent_name}: {'CORRECT' if result.correct else 'INCORRECT'}")
        print(f"  Reward: +{result.reward:.2f}")
        print(f"  Streak: {result.new_streak}\n")
        return 0

    except OracleError as e:
        print(f"\n❌ {e}\n")
        return 1


def cmd_expired(args: argparse.Namespace) -> int:
    """List open topics past their deadline."""
    coordinator = _build_coordinator(get_settings())
    topics = coordinator.expired_topics()

    print(f"\nExpired topics awaiting resolution: {len(topics)}")
    for topic in topics:
        print(f"  • {topic.id} [{topic.category}] {topic.title} (deadline {topic.deadline:%Y-%m-%d})")
    print()
    return 0


def cmd_leaderboard(args: argparse.Namespace) -> int:
    """Display the leaderboard."""
    coordinator = _build_coordinator(get_settings())
    entries = coordinator.leaderboard(args.limit)

    print(f"\n{announcements.format_leaderboard(entries, datetime.now(timezone.utc))}\n")
    return 0


def main(argv: list[str] | None = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        description="Oracle: prediction lifecycle and scoring engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"Oracle {__version__}",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    parser_init = subparsers.add_parser(
        "init",
        help="Initialize data directory and configuration files",
    )
    parser_init.set_defaults(func=cmd_init)

    parser_config = subparsers.add_parser(
        "config",
        help="Display merged configuration",
    )
    parser_config.set_defaults(func=cmd_config)

    parser_parse = subparsers.add_parser(
        "parse",
        help="Extract a forecast from comment text (stdin if no --text/--file)",
    )
    parser_parse.add_argument("--text", help="Comment text; literal \\n is treated as a newline")
    parser_parse.add_argument("--file", help="Read comment text from a file")
    parser_parse.set_defaults(func=cmd_parse)

    parser_open = subparsers.add_parser(
        "open-topic",
        help="Record a published forecasting topic",
    )
    parser_open.add_argument("--title", required=True, help="Topic title")
    parser_open.add_argument("--description", default="", help="Topic description")
    parser_open.add_argument("--category", default="other", help="tech|crypto|ai|world|science|other")
    parser_open.add_argument("--deadline", help="Deadline, e.g. 'within 30 days' or '2026-03-15'")
    parser_open.add_argument("--post-id", help="Originating platform post ID")
    parser_open.set_defaults(func=cmd_open_topic)

    parser_submit = subparsers.add_parser(
        "submit",
        help="Record a forecast comment from an agent",
    )
    parser_submit.add_argument("--author", required=True, help="Platform username")
    parser_submit.add_argument("--topic-id", help="Topic the forecast answers")
    parser_submit.add_argument("--comment-id", help="Platform comment ID (deduplicates)")
    parser_submit.add_argument("--text", help="Comment text; literal \\n is treated as a newline")
    parser_submit.add_argument("--file", help="Read comment text from a file")
    parser_submit.set_defaults(func=cmd_submit)

    parser_settle = subparsers.add_parser(
        "settle",
        help="Resolve a topic and settle its pending forecasts",
    )
    parser_settle.add_argument("topic_id", help="Topic ID to resolve")
    parser_settle.add_argument("--outcome", required=True, help="Actual outcome text")
    parser_settle.add_argument(
        "--match",
        action="append",
        help="Explicit match term (repeatable); disables the polarity heuristic",
    )
    parser_settle.set_defaults(func=cmd_settle)

    parser_resume = subparsers.add_parser(
        "resume",
        help="Settle forecasts left pending on a resolved topic",
    )
    parser_resume.add_argument("topic_id", help="Resolved topic ID")
    parser_resume.set_defaults(func=cmd_resume)

    parser_forecast = subparsers.add_parser(
        "settle-forecast",
        help="Settle a single forecast manually",
    )
    parser_forecast.add_argument("forecast_id", help="Forecast ID")
    verdict = parser_forecast.add_mutually_exclusive_group(required=True)
    verdict.add_argument("--correct", dest="correct", action="store_true")
    verdict.add_argument("--incorrect", dest="correct", action="store_false")
    parser_forecast.add_argument("--ledger-ref", help="Known settlement transaction ID")
    parser_forecast.set_defaults(func=cmd_settle_forecast)

    parser_expired = subparsers.add_parser(
        "expired",
        help="List open topics past their deadline",
    )
    parser_expired.set_defaults(func=cmd_expired)

    parser_leaderboard = subparsers.add_parser(
        "leaderboard",
        help="Display the leaderboard",
    )
    parser_leaderboard.add_argument("--limit", type=int, default=None, help="Number of agents")
    parser_leaderboard.set_defaults(func=cmd_leaderboard)

    args = parser.parse_args(argv)

    if not hasattr(args, "func"):
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
