"""Tests for URL and error message sanitization."""

from build_cache.security import sanitize_error_message, sanitize_url


class TestSanitizeUrl:
    def test_redacts_sas_parameters(self):
        url = "https://acct.blob.core.windows.net/cache/archive?sv=2021-08-06&se=2025-01-01&sig=abc%2Bdef"

        result = sanitize_url(url)

        assert "abc%2Bdef" not in result
        assert "sig=[REDACTED]" in result
        assert "se=[REDACTED]" in result
        assert result.startswith("https://acct.blob.core.windows.net/cache/archive?")

    def test_keeps_harmless_parameters(self):
        url = "https://cache.example.test/download?archive=cache.tzst&token=secret"

        result = sanitize_url(url)

        assert "archive=cache.tzst" in result
        assert "token=[REDACTED]" in result
        assert "secret" not in result

    def test_parameter_names_case_insensitive(self):
        assert "SIG=[REDACTED]" in sanitize_url("https://h.test/p?SIG=abc")

    def test_url_without_query_unchanged(self):
        url = "http://www.actionscache.test/download"
        assert sanitize_url(url) == url

    def test_empty(self):
        assert sanitize_url("") == ""

    def test_unparseable_unchanged(self):
        url = "http://[invalid/archive?sig=abc"
        assert sanitize_url(url) == url


class TestSanitizeErrorMessage:
    def test_redacts_signature_in_text(self):
        message = "GET https://acct.blob.core.windows.net/c/o?sv=1&sig=SECRET failed"

        result = sanitize_error_message(message)

        assert "SECRET" not in result
        assert "sig=[REDACTED]" in result

    def test_plain_message_unchanged(self):
        assert sanitize_error_message("Connection refused") == "Connection refused"

    def test_other_parameters_ending_in_key_names_kept(self):
        """Only whole parameter names are redacted, not words ending in them."""
        message = "response=ok license=MIT retoken=1 x-se=2"
        assert sanitize_error_message(message) == message

    def test_redacts_parameters_at_start_of_text(self):
        result = sanitize_error_message("se=2025-01-01 token=abc access_token=xyz")
        assert result == "se=[REDACTED] token=[REDACTED] access_token=[REDACTED]"
