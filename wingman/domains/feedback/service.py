"""Suggestion feedback: what the owner did with a suggestion and how the match reacted."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from wingman.domains.store import FeedbackRecord, WingmanStore
from wingman.exceptions import NotFoundError
from wingman.schemas.feedback import FeedbackCreate, FeedbackMetrics

logger = logging.getLogger("feedback")


def calculate_metrics(feedback: Sequence[FeedbackRecord]) -> FeedbackMetrics:
    """Rates over all rows; averages only over rows that carry the value."""
    if not feedback:
        return FeedbackMetrics()

    total = len(feedback)
    selected = sum(1 for f in feedback if f.user_selected_index is not None)
    scores = [f.outcome_score for f in feedback if f.outcome_score is not None]
    response_times = [f.match_response_time for f in feedback if f.match_response_time is not None]
    positive = sum(1 for f in feedback if f.match_engagement == "positive")

    return FeedbackMetrics(
        suggestionAcceptanceRate=selected / total,
        averageOutcomeScore=sum(scores) / len(scores) if scores else 0.0,
        averageResponseTime=sum(response_times) / len(response_times) if response_times else 0.0,
        positiveEngagementRate=positive / total,
    )


class FeedbackService:
    """Record suggestion feedback and report per-conversation metrics."""

    def __init__(self, store: WingmanStore):
        self.store = store

    async def record(self, *, data: FeedbackCreate) -> tuple[FeedbackRecord, FeedbackMetrics]:
        """Store the feedback and mark the suggestion as used.

        Raises:
            NotFoundError: The suggestion does not belong to the conversation
        """
        saved = await self.store.record_feedback(
            FeedbackRecord(
                bot_suggestion_id=data.botSuggestionId,
                conversation_id=data.conversationId,
                user_selected_index=data.userSelectedIndex,
                user_modified=data.userModified,
                outcome_score=data.outcomeScore,
                match_response_time=data.matchResponseTime,
                match_engagement=data.matchEngagement,
                feedback_notes=data.feedbackNotes,
            )
        )
        if saved is None:
            raise NotFoundError(
                "Suggestion",
                data.botSuggestionId,
                details={"conversation_id": str(data.conversationId)},
            )

        metrics = calculate_metrics(await self.store.list_feedback(data.conversationId))
        logger.info(
            "Suggestion feedback recorded",
            extra={
                "service": "feedback",
                "metadata": {
                    "conversation_id": str(data.conversationId),
                    "suggestion_id": str(data.botSuggestionId),
                    "selected_index": data.userSelectedIndex,
                    "acceptance_rate": metrics.suggestionAcceptanceRate,
                },
            },
        )
        return saved, metrics
