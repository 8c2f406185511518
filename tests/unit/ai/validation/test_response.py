"""Tests for ResponseRepairer (repair + normalize + validate)."""

import json

import pytest

from wingman.ai.validation import ResponseRepairer
from wingman.exceptions import ResponseFormatError, ResponseValidationError
from wingman.schemas.bot import BOT_SHAPE_PATTERN, BotResponse, BotStrategy
from wingman.schemas.suggestion import (
    WINGMAN_SHAPE_PATTERN,
    SuggestionType,
    WingmanResponse,
    normalize_wingman_payload,
)

VALID_WINGMAN = {
    "analysis": {
        "her_last_message_feeling": "playful",
        "conversation_vibe": "flirty banter",
        "recommended_goal": "suggest meeting up",
    },
    "suggestion": {
        "type": "Direct/Confident",
        "text": "ok you owe me coffee now",
        "rationale": "Turns the joke into a plan",
    },
    "wingman_tip": "Keep it light.",
}


@pytest.fixture
def wingman_repairer():
    return ResponseRepairer(WingmanResponse, normalize_wingman_payload, WINGMAN_SHAPE_PATTERN)


@pytest.fixture
def bot_repairer():
    return ResponseRepairer(BotResponse, shape_pattern=BOT_SHAPE_PATTERN)


class TestWingmanParsing:
    def test_valid_payload(self, wingman_repairer):
        response = wingman_repairer.parse(json.dumps(VALID_WINGMAN))

        assert isinstance(response, WingmanResponse)
        assert response.suggestion.type is SuggestionType.DIRECT
        assert response.conversationType == "one_on_one"

    def test_fenced_payload_with_raw_newline(self, wingman_repairer):
        body = json.dumps(VALID_WINGMAN).replace("Keep it light.", "Keep it\nlight.")
        response = wingman_repairer.parse(f"```json\n{body}\n```")

        assert response.wingman_tip == "Keep it\nlight."

    def test_legacy_suggestions_list_is_adopted(self, wingman_repairer):
        payload = dict(VALID_WINGMAN)
        payload["suggestions"] = [payload.pop("suggestion")]

        response = wingman_repairer.parse(json.dumps(payload))

        assert response.suggestion.text == "ok you owe me coffee now"

    def test_missing_suggestion_uses_default(self, wingman_repairer):
        payload = {k: v for k, v in VALID_WINGMAN.items() if k != "suggestion"}

        response = wingman_repairer.parse(json.dumps(payload))

        assert response.suggestion.type is SuggestionType.CURIOUS

    def test_invalid_suggestion_type_lists_path(self, wingman_repairer):
        payload = json.loads(json.dumps(VALID_WINGMAN))
        payload["suggestion"]["type"] = "Sarcastic"

        with pytest.raises(ResponseValidationError) as exc_info:
            wingman_repairer.parse(json.dumps(payload))

        paths = [e["path"] for e in exc_info.value.errors]
        assert "suggestion.type" in paths

    def test_all_failing_paths_reported(self, wingman_repairer):
        payload = {"analysis": {}, "suggestion": VALID_WINGMAN["suggestion"]}

        with pytest.raises(ResponseValidationError) as exc_info:
            wingman_repairer.parse(json.dumps(payload))

        paths = {e["path"] for e in exc_info.value.errors}
        assert paths == {"analysis.conversation_vibe", "analysis.recommended_goal", "wingman_tip"}

    def test_non_json_raises_format_error(self, wingman_repairer):
        with pytest.raises(ResponseFormatError):
            wingman_repairer.parse("Sorry, I can't do that.")


class TestBotParsing:
    def test_engage(self, bot_repairer):
        raw = '{"strategy": "ENGAGE", "messages": [{"text": "lol", "delayMs": 800}]}'
        response = bot_repairer.parse(raw)

        assert response.strategy is BotStrategy.ENGAGE
        assert response.messages[0].delayMs == 800

    def test_observe_drops_messages(self, bot_repairer):
        raw = '{"strategy": "OBSERVE", "messages": [{"text": "hi", "delayMs": 800}]}'
        response = bot_repairer.parse(raw)

        assert response.strategy is BotStrategy.OBSERVE
        assert response.messages == []

    def test_delay_out_of_range(self, bot_repairer):
        raw = '{"strategy": "ENGAGE", "messages": [{"text": "hi", "delayMs": 100}]}'

        with pytest.raises(ResponseValidationError) as exc_info:
            bot_repairer.parse(raw)

        assert exc_info.value.errors[0]["path"] == "messages.0.delayMs"
