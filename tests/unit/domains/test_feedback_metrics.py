"""Tests for per-conversation feedback metrics."""

import uuid

import pytest

from wingman.domains.feedback import calculate_metrics
from wingman.domains.store import FeedbackRecord

SUGGESTION_ID = uuid.uuid4()
CONVERSATION_ID = uuid.uuid4()


def feedback(**fields):
    return FeedbackRecord(bot_suggestion_id=SUGGESTION_ID, conversation_id=CONVERSATION_ID, **fields)


class TestCalculateMetrics:
    def test_no_feedback_is_all_zero(self):
        metrics = calculate_metrics([])

        assert metrics.model_dump() == {
            "suggestionAcceptanceRate": 0.0,
            "averageOutcomeScore": 0.0,
            "averageResponseTime": 0.0,
            "positiveEngagementRate": 0.0,
        }

    def test_rates_use_every_row(self):
        metrics = calculate_metrics(
            [
                feedback(user_selected_index=0, match_engagement="positive"),
                feedback(user_selected_index=None, match_engagement="negative"),
                feedback(user_selected_index=2),
                feedback(),
            ]
        )

        assert metrics.suggestionAcceptanceRate == 0.5
        assert metrics.positiveEngagementRate == 0.25

    def test_first_suggestion_counts_as_selected(self):
        assert calculate_metrics([feedback(user_selected_index=0)]).suggestionAcceptanceRate == 1.0

    def test_averages_skip_missing_values(self):
        metrics = calculate_metrics(
            [
                feedback(outcome_score=4.0, match_response_time=30),
                feedback(outcome_score=2.0),
                feedback(match_response_time=90),
            ]
        )

        assert metrics.averageOutcomeScore == pytest.approx(3.0)
        assert metrics.averageResponseTime == pytest.approx(60.0)
