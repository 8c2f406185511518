"""Tests for the application error hierarchy."""

import uuid

from wingman.exceptions import (
    AppError,
    ConversationNotFoundError,
    ProviderError,
    ProvidersExhaustedError,
    RequestValidationFailed,
    ResponseFormatError,
)


class TestProviderError:
    def test_retryable_statuses(self):
        for status in (429, 500, 502, 503, 504):
            assert ProviderError("gemini", "m", "x", status_code=status).retryable is True

    def test_client_errors_are_not_retryable(self):
        for status in (400, 401, 403, 404):
            assert ProviderError("gemini", "m", "x", status_code=status).retryable is False

    def test_cache_miss_is_retryable(self):
        exc = ProviderError("gemini", "m", "gone", status_code=404, cache_miss=True)
        assert exc.retryable is True
        assert exc.details["cache_miss"] is True

    def test_explicit_retryable_wins(self):
        assert ProviderError("gemini", "m", "timeout", retryable=True).retryable is True


class TestOtherErrors:
    def test_str_includes_code(self):
        assert str(AppError("boom")) == "[APP_ERROR] boom"

    def test_conversation_not_found(self):
        conversation_id = uuid.uuid4()
        exc = ConversationNotFoundError(conversation_id)

        assert exc.http_status == 404
        assert exc.details["identifier"] == str(conversation_id)

    def test_request_validation_errors(self):
        exc = RequestValidationFailed(errors=[{"path": "userId", "message": "Field required"}])

        assert exc.http_status == 400
        assert exc.to_dict()["error"]["details"]["errors"][0]["path"] == "userId"

    def test_exhausted_lists_models(self):
        exc = ProvidersExhaustedError(["a", "b"], ValueError("last"))

        assert exc.message == "All providers exhausted. Models tried: a, b"
        assert exc.details["last_error"] == "last"
        assert exc.http_status == 500

    def test_format_error_message(self):
        exc = ResponseFormatError("raw", offset=3, reason="Expecting value")
        assert exc.message == "Model response is not valid JSON: Expecting value"
