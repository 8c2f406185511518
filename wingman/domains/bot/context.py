"""Prompt assembly for the autonomous room bot."""

from collections.abc import Sequence
from datetime import UTC, datetime

from wingman.domains.store import BotRecord, RoomContext, RoomEvent, UserSummary
from wingman.domains.wingman.context import NO_RECENT_MESSAGES, SEPARATOR


def format_event_time(timestamp_ms: int) -> str:
    """``jan 5, 3:07pm`` in UTC."""
    moment = datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC)
    hour12 = moment.hour % 12 or 12
    suffix = "pm" if moment.hour >= 12 else "am"
    return f"{moment.strftime('%b').lower()} {moment.day}, {hour12}:{moment.minute:02d}{suffix}"


def format_events_as_narrative(events: Sequence[RoomEvent]) -> str:
    if not events:
        return NO_RECENT_MESSAGES

    lines = []
    for event in events:
        when = format_event_time(event.timestamp)
        if not event.platform_id:
            # System notifications (joins, leaves) carry no sender id
            lines.append(f"System: {event.text} at {when}")
        else:
            lines.append(f'{event.username}({event.platform_id}) sent "{event.text}" at {when}')
    return "\n".join(lines)


def _summary_text(summary: UserSummary, key: str, default: str) -> str:
    value = summary.summary
    if isinstance(value, str):
        return value
    if isinstance(value, dict) and value.get(key):
        return str(value[key])
    return default


def describe_room(context: RoomContext) -> str:
    if context.room_summary is None:
        return "Fresh chat room."
    return f"Room vibe: {context.room_summary}. Mood is {context.room_mood or 'neutral'}."


def describe_users(summaries: Sequence[UserSummary]) -> str:
    if not summaries:
        return "No prior interactions."
    return ". ".join(f"{s.display_name}: {_summary_text(s, 'summary', 'new here')}" for s in summaries)


def describe_relationships(summaries: Sequence[UserSummary]) -> str:
    if not summaries:
        return "New connections."
    return ". ".join(
        f"With {s.display_name}: {_summary_text(s, 'relationshipSummary', 'just met')} "
        f"(closeness: {s.closeness_score or 0}/10)"
        for s in summaries
    )


def describe_history(summaries: Sequence[UserSummary]) -> str:
    return ". ".join(
        f"{s.display_name}: {_summary_text(s, 'globalRelationshipSummary', 'minimal history')}" for s in summaries
    )


def build_bot_prompt(bot: BotRecord, context: RoomContext, narrative: str) -> str:
    """Per-request part of the bot prompt; the instructions are sent separately."""
    known = [
        f"• Room: {describe_room(context)}",
        f"• Users: {describe_users(context.user_summaries)}",
        f"• Relationships: {describe_relationships(context.relationship_summaries)}",
    ]
    history = describe_history(context.global_summaries)
    if history:
        known.append(f"• Past history: {history}")

    return (
        f"YOU ARE {bot.username} ({bot.platform_id})\n\n"
        f"YOUR PERSONALITY:\n{bot.personality}\n\n"
        "WHAT YOU KNOW:\n" + "\n".join(known) + "\n\n"
        f"{SEPARATOR}\nRECENT MESSAGES (timestamps = conversation pace):\n{SEPARATOR}\n"
        f"{narrative}\n{SEPARATOR}\n\n"
        "Respond now:"
    )
