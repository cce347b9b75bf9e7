"""
Announcement Rendering

Human-readable text for settlement results and the leaderboard.

Functions:
- accuracy(correct, total): percentage with one decimal
- agent_rank(accuracy, total): rank title by accuracy and volume
- format_resolution_announcement(settlement): topic settlement post
- format_leaderboard(entries, now): leaderboard post
"""

from datetime import datetime

from oracle.game.models import LeaderboardEntry, TopicSettlement

REWARD_UNIT = "ORT"
TOP_WINNERS = 5
HOT_STREAK = 3


def accuracy(correct: int, total: int) -> float:
    if total == 0:
        return 0.0
    return round(correct / total * 100, 1)


def agent_rank(accuracy_pct: float, total_forecasts: int) -> str:
    """Rank title for an agent, gated on forecast volume first."""
    if total_forecasts < 5:
        return "🔰 Novice"
    if total_forecasts < 20:
        return "⭐ Rising Star" if accuracy_pct >= 70 else "📊 Apprentice"
    if total_forecasts < 50:
        if accuracy_pct >= 80:
            return "🌟 Expert Oracle"
        if accuracy_pct >= 60:
            return "🔮 Seer"
        return "📈 Analyst"
    if accuracy_pct >= 85:
        return "👑 Grand Oracle"
    if accuracy_pct >= 75:
        return "💫 Master Seer"
    if accuracy_pct >= 65:
        return "🎯 Veteran"
    return "📉 Experienced"


def _medal(rank: int) -> str:
    return {1: "🥇", 2: "🥈", 3: "🥉"}.get(rank, f"{rank}.")


def format_resolution_announcement(settlement: TopicSettlement) -> str:
    lines = [
        "# 🏆 Prediction Resolved!",
        "",
        f"**Topic:** {settlement.title}",
        f"**Outcome:** {settlement.outcome}",
        f"**Results:** {settlement.correct_count}/{settlement.total_count} correct predictions",
        "",
        "---",
        "",
    ]

    winners = sorted(
        (r for r in settlement.results if r.correct),
        key=lambda r: r.reward,
        reverse=True,
    )[:TOP_WINNERS]

    if winners:
        lines.append("**🎉 Top Predictions:**")
        for i, winner in enumerate(winners, 1):
            medal = _medal(i) if i <= 3 else "•"
            line = f"{medal} {winner.agent_name}: +{winner.reward:.2f} {REWARD_UNIT}"
            if winner.new_streak >= HOT_STREAK:
                line += f" 🔥{winner.new_streak}"
            lines.append(line)
    else:
        lines.append("*No correct predictions this time!*")

    lines.extend(["", "---", f"*Rewards distributed in {REWARD_UNIT}*"])
    return "\n".join(lines)


def format_leaderboard_entry(rank: int, entry: LeaderboardEntry) -> str:
    if entry.current_streak >= HOT_STREAK:
        streak = f"🔥{entry.current_streak}"
    elif entry.current_streak > 0:
        streak = str(entry.current_streak)
    else:
        streak = "-"

    return (
        f"{_medal(rank)} **{entry.name}** | {entry.accuracy}% "
        f"({entry.correct_forecasts}/{entry.total_forecasts}) | Streak: {streak} "
        f"| {entry.total_reward:,.2f} {REWARD_UNIT}"
    )


def format_leaderboard(entries: list[LeaderboardEntry], now: datetime) -> str:
    header = "🔮 **Oracle Challenge Leaderboard**\n\n"
    if not entries:
        return header + "*No predictions yet! Be the first to participate.*"

    body = "\n".join(format_leaderboard_entry(i, e) for i, e in enumerate(entries, 1))
    footer = f"\n\n---\n*Updated: {now.strftime('%Y-%m-%d %H:%M UTC')}*"
    return header + body + footer
