"""Tests for bot prompt assembly."""

import uuid

from wingman.domains.bot.context import (
    build_bot_prompt,
    describe_history,
    describe_relationships,
    describe_room,
    describe_users,
    format_event_time,
    format_events_as_narrative,
)
from wingman.domains.store import BotRecord, RoomContext, RoomEvent, UserSummary

# 2023-11-14 22:13:20 UTC
BASE_TS = 1_700_000_000_000


class TestNarrative:
    def test_event_time_is_lowercase_12_hour(self):
        assert format_event_time(BASE_TS) == "nov 14, 10:13pm"

    def test_morning_and_midnight(self):
        # 2023-11-15 00:05:00 UTC and 09:30:00 UTC
        assert format_event_time(1_700_006_700_000) == "nov 15, 12:05am"
        assert format_event_time(1_700_040_600_000) == "nov 15, 9:30am"

    def test_user_and_system_lines(self):
        events = [
            RoomEvent(username="ana", text="hi all", timestamp=BASE_TS, platform_id="u1"),
            RoomEvent(username="system", text="bea joined", timestamp=BASE_TS, type="join"),
        ]

        narrative = format_events_as_narrative(events)

        assert narrative.split("\n") == [
            'ana(u1) sent "hi all" at nov 14, 10:13pm',
            "System: bea joined at nov 14, 10:13pm",
        ]

    def test_empty(self):
        assert format_events_as_narrative([]) == "No recent messages."


class TestDescriptions:
    def test_room(self):
        assert describe_room(RoomContext()) == "Fresh chat room."
        assert describe_room(RoomContext(room_summary="late night chatter", room_mood="sleepy")) == (
            "Room vibe: late night chatter. Mood is sleepy."
        )
        assert describe_room(RoomContext(room_summary="quiet")) == "Room vibe: quiet. Mood is neutral."

    def test_users(self):
        summaries = [
            UserSummary("u1", "ana", "loves cats"),
            UserSummary("u2", "bea", {"summary": "gamer"}),
            UserSummary("u3", "cy", {}),
        ]
        assert describe_users(summaries) == "ana: loves cats. bea: gamer. cy: new here"
        assert describe_users([]) == "No prior interactions."

    def test_relationships(self):
        summaries = [UserSummary("u1", "ana", {"relationshipSummary": "inside jokes"}, 7.5)]
        assert describe_relationships(summaries) == "With ana: inside jokes (closeness: 7.5/10)"
        assert describe_relationships([]) == "New connections."

    def test_history(self):
        assert describe_history([UserSummary("u1", "ana", None)]) == "ana: minimal history"
        assert describe_history([]) == ""


class TestBuildBotPrompt:
    def test_sections(self):
        bot = BotRecord(uuid.uuid4(), "bot-1", "kai", "dry humor")
        context = RoomContext(global_summaries=[UserSummary("u1", "ana", "met last week")])

        prompt = build_bot_prompt(bot, context, 'ana(u1) sent "hi" at nov 14, 10:13pm')

        assert prompt.startswith("YOU ARE kai (bot-1)\n\nYOUR PERSONALITY:\ndry humor\n\nWHAT YOU KNOW:\n")
        assert "• Room: Fresh chat room." in prompt
        assert "• Users: No prior interactions." in prompt
        assert "• Relationships: New connections." in prompt
        assert "• Past history: ana: met last week" in prompt
        assert 'ana(u1) sent "hi"' in prompt
        assert prompt.endswith("Respond now:")

    def test_no_history_line_without_global_summaries(self):
        bot = BotRecord(uuid.uuid4(), "bot-1", "kai", "dry humor")

        assert "Past history" not in build_bot_prompt(bot, RoomContext(), "No recent messages.")
