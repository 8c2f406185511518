"""Prompt assembly for wingman analysis requests.

Everything here is pure: the service fetches data, these functions turn it
into the static (cacheable) and dynamic parts of the prompt.
"""

import json
import re
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any

from wingman.domains.store import PartyProfile, RelationshipSummaries
from wingman.schemas.requests import RecentMessage, WingmanRequest

MAX_RECENT_MESSAGES = 10

NO_RECENT_MESSAGES = "No recent messages."
NO_HISTORY = "No prior history - first interaction"

SEPARATOR = "━" * 60

TONE_LEVELS = ("very_shy", "warming_up", "casual_friend")


def _format_time(timestamp_ms: float) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000, tz=UTC).strftime("%H:%M:%S")


def is_group_chat(messages: Sequence[RecentMessage] | None, detected_participants: Sequence[str] | None = None) -> bool:
    """A chat is a group when more than one other party is involved."""
    if detected_participants and len(set(detected_participants)) > 1:
        return True
    if not messages:
        return False
    if any(m.messageType == "group" for m in messages):
        return True
    others = {m.senderId for m in messages if m.sender != "user" and m.senderId}
    return len(others) > 1


def format_recent_messages(
    messages: Sequence[RecentMessage] | None,
    group_chat: bool = False,
    user_id: str | None = None,
) -> str:
    """Render the last ten messages, oldest first, one per line."""
    if not messages:
        return NO_RECENT_MESSAGES

    lines = []
    for message in list(messages)[-MAX_RECENT_MESSAGES:]:
        if group_chat:
            if message.sender == "user":
                label = "You"
            elif message.senderName:
                label = message.senderName
            elif message.senderId and message.senderId != user_id:
                label = message.senderId
            else:
                label = "Match"
        else:
            label = "You" if message.sender == "user" else "Her"
        lines.append(f'[{_format_time(message.timestamp)}] {label}: "{message.text}"')
    return "\n".join(lines)


def calculate_tone_level(closeness_score: float | None, interaction_count: int | None) -> str:
    """Map closeness (0-10) and interaction count onto a tone level.

    Fewer than 5 interactions steps one level down, more than 20 one up.
    """
    score = closeness_score or 0
    count = interaction_count or 0

    if score <= 3:
        index = 0
    elif score <= 6:
        index = 1
    else:
        index = 2

    if count < 5:
        index = max(index - 1, 0)
    elif count > 20:
        index = min(index + 1, len(TONE_LEVELS) - 1)
    return TONE_LEVELS[index]


def _summary_text(value: Any, key: str, default: str) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, dict):
        text = value.get(key)
        if text:
            return str(text)
    return default


def build_relationship_context(summaries: RelationshipSummaries) -> str:
    if summaries.is_empty:
        return NO_HISTORY

    parts = []
    if summaries.room is not None:
        parts.append(f"Room: {_summary_text(summaries.room, 'summary', 'new here')}")
    if summaries.relationship is not None:
        parts.append(
            f"Relationship: {_summary_text(summaries.relationship, 'relationshipSummary', 'just met')}"
        )
    if summaries.global_ is not None:
        parts.append(
            f"History: {_summary_text(summaries.global_, 'globalRelationshipSummary', 'minimal history')}"
        )
    return " | ".join(parts)


def format_tone_line(tone_level: str, closeness_score: float | None, interaction_count: int | None) -> str:
    closeness = closeness_score if closeness_score is not None else 0
    interactions = interaction_count if interaction_count is not None else 0
    return f"CURRENT RELATIONSHIP: {tone_level} (closeness: {closeness}/10, interactions: {interactions})"


def format_party_info(profile: PartyProfile) -> str:
    return f"Name: {profile.display_name}\nProfile: {json.dumps(profile.profile_data, indent=2)}"


def build_static_content(user: PartyProfile, party: PartyProfile) -> str:
    """Profile block bound to the prompt cache together with the system prompt."""
    return f"USER INFO:\n{format_party_info(user)}\n\nGIRL INFO:\n{format_party_info(party)}"


def build_dynamic_content(
    relationship_context: str,
    tone_line: str,
    recent_messages: str,
    strategy: str | None = None,
) -> str:
    content = (
        f"RELATIONSHIP CONTEXT: {relationship_context}\n\n"
        f"{tone_line}\n\n"
        f"{SEPARATOR}\nRECENT MESSAGES:\n{SEPARATOR}\n"
        f"{recent_messages or NO_RECENT_MESSAGES}"
    )
    if strategy:
        content = f"PROFILE STRATEGY:\n{strategy}\n\n{content}"
    return content


def resolve_target_user(request: WingmanRequest) -> tuple[str | None, str | None]:
    """Platform id and display name of the person to reply to.

    ``targetUserId`` wins over ``girlId``; otherwise the sender of the most
    recent message from someone other than the user.
    """
    target_id = request.targetUserId or request.girlId
    name = request.girlName

    for message in reversed(request.recentMessages or []):
        if message.sender == "user":
            continue
        if target_id is None and message.senderId:
            target_id = message.senderId
        if message.senderId == target_id and message.senderName and not name:
            name = message.senderName
        if target_id is not None and name:
            break
    return target_id, name


def cache_scope_key(prompt_version: str, user_id: str, target_id: str) -> str:
    return f"wingman_{prompt_version}_{user_id}_{target_id}"


# Pronoun and noun cues used to guess the other party's gender from chat text
_FEMALE_CUES = (
    re.compile(r"\b(she|her|hers|herself)\b"),
    re.compile(r"\b(girl|woman|lady|female)\b"),
    re.compile(r"\b(daughter|sister|mom|mother|aunt|niece)\b"),
    re.compile(r"\b(princess|queen|goddess)\b"),
)
_MALE_CUES = (
    re.compile(r"\b(he|him|his|himself)\b"),
    re.compile(r"\b(boy|man|guy|male)\b"),
    re.compile(r"\b(son|brother|dad|father|uncle|nephew)\b"),
    re.compile(r"\b(prince|king|dude)\b"),
)


def detect_gender(texts: Sequence[str]) -> str:
    """Guess gender from message text; needs at least two clear cues."""
    combined = " ".join(texts).lower()
    female = sum(len(p.findall(combined)) for p in _FEMALE_CUES)
    male = sum(len(p.findall(combined)) for p in _MALE_CUES)
    if female >= 2 and female > male * 1.5:
        return "female"
    if male >= 2 and male > female * 1.5:
        return "male"
    return "unknown"
