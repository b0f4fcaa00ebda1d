"""
Unit tests for provider error classification and error payloads.
"""
import pytest

from mailpdf.utils.errors import (
    ConfigurationError,
    ProviderErrorKind,
    ReconnectRequiredError,
    UpstreamProviderError,
    classify_provider_error,
    provider_error,
)


class TestClassifyProviderError:

    @pytest.mark.parametrize("status,text,kind,expected_status", [
        (403, "Gmail API has not been used in project 123 before or it is disabled.",
         ProviderErrorKind.API_NOT_ENABLED, 403),
        (403, "accessNotConfigured ACCESS_NOT_CONFIGURED", ProviderErrorKind.API_NOT_ENABLED, 403),
        (403, "Request had insufficient authentication scopes.",
         ProviderErrorKind.INSUFFICIENT_PERMISSION, 403),
        (None, "access_denied", ProviderErrorKind.INSUFFICIENT_PERMISSION, 403),
        (400, "redirect_uri_mismatch Bad Request", ProviderErrorKind.REDIRECT_URI_MISMATCH, 400),
        (400, "invalid_grant Token has been expired or revoked.",
         ProviderErrorKind.RECONNECT_REQUIRED, 401),
        (401, "Request had invalid authentication credentials.",
         ProviderErrorKind.RECONNECT_REQUIRED, 401),
        (400, "Login Required", ProviderErrorKind.RECONNECT_REQUIRED, 401),
        (400, "Invalid id value", ProviderErrorKind.UNKNOWN, 400),
        (None, "", ProviderErrorKind.UNKNOWN, 500),
        (302, "weird", ProviderErrorKind.UNKNOWN, 500),
    ])
    def test_kinds(self, status, text, kind, expected_status):
        diagnosis = classify_provider_error(status, text)

        assert diagnosis.kind == kind
        assert diagnosis.status_code == expected_status

    def test_setup_problems_checked_before_reconnect(self):
        # A 401 that names the disabled API is still a setup problem
        diagnosis = classify_provider_error(401, "Gmail API has not been used in project 1")
        assert diagnosis.kind == ProviderErrorKind.API_NOT_ENABLED

    def test_each_known_kind_has_a_distinct_hint(self):
        texts = {
            "api has not been used",
            "forbidden",
            "redirect_uri_mismatch",
            "invalid_grant",
        }
        hints = {classify_provider_error(400, text).hint for text in texts}
        assert len(hints) == 4
        assert None not in hints

    def test_unknown_500_has_hint_but_4xx_does_not(self):
        assert classify_provider_error(500, "backend error").hint
        assert classify_provider_error(400, "bad").hint is None


class TestProviderErrors:

    def test_upstream_error_uses_diagnosis(self):
        error = UpstreamProviderError(403, "Gmail API has not been used")

        assert error.status_code == 403
        assert error.code == "PROVIDER_API_NOT_ENABLED"
        assert error.to_dict()["hint"]

    def test_provider_error_maps_reconnect(self):
        error = provider_error(401, "Invalid Credentials")

        assert isinstance(error, ReconnectRequiredError)
        assert error.status_code == 401
        assert error.code == "RECONNECT_REQUIRED"
        assert "reconnect" in error.message.lower()

    def test_unknown_error_keeps_provider_text(self):
        error = UpstreamProviderError(500, "Backend Error: quota shard xyz")
        data = error.to_dict()

        assert error.is_unclassified_failure
        assert data["code"] == "PROVIDER_UNKNOWN"
        assert data["message"] == "Backend Error: quota shard xyz"
        assert data["details"] == {"provider_status": 500, "provider_message": "Backend Error: quota shard xyz"}

    def test_unknown_error_without_text_has_generic_message(self):
        error = UpstreamProviderError(502)

        assert error.message == "Gmail request failed (502)."
        assert error.is_unclassified_failure is False

    def test_provider_error_keeps_other_kinds(self):
        error = provider_error(400, "redirect_uri_mismatch")
        assert isinstance(error, UpstreamProviderError)
        assert error.kind == ProviderErrorKind.REDIRECT_URI_MISMATCH


class TestConfigurationError:

    def test_lists_missing_settings(self):
        error = ConfigurationError(["GOOGLE_CLIENT_ID", "FRONTEND_ORIGIN"])
        data = error.to_dict()

        assert error.status_code == 500
        assert data["code"] == "CONFIG_MISSING"
        assert data["missing"] == ["GOOGLE_CLIENT_ID", "FRONTEND_ORIGIN"]
