from wingman.domains.feedback.service import FeedbackService, calculate_metrics

__all__ = ["FeedbackService", "calculate_metrics"]
