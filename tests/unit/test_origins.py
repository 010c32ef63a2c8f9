"""Unit tests for the CORS origin allow-list."""

import pytest

from page_analytics.origins import OriginPolicy


@pytest.fixture
def policy():
    return OriginPolicy(["null", "localhost", "127.0.0.1", "https://example.com", ".trusted.io"])


class TestOriginPolicy:
    @pytest.mark.parametrize(
        "origin",
        [
            "http://localhost",
            "http://localhost:3000",
            "https://LOCALHOST:8443",
            "http://127.0.0.1:5500",
            "https://example.com",
            "https://example.com/",
            "https://trusted.io",
            "https://app.trusted.io",
            "null",
        ],
    )
    def test_allowed(self, policy, origin):
        assert policy.is_allowed(origin)

    @pytest.mark.parametrize(
        "origin",
        [
            "http://evillocalhost.com",
            "http://localhost.evil.com",
            "http://example.com",
            "https://example.com:8443",
            "https://notexample.com",
            "https://eviltrusted.io",
            "not a url",
        ],
    )
    def test_rejected(self, policy, origin):
        assert not policy.is_allowed(origin)

    def test_missing_origin_is_allowed_without_cors_headers(self, policy):
        assert policy.is_allowed(None)
        assert policy.cors_headers(None) == {}

    def test_null_origin_requires_entry(self):
        policy = OriginPolicy(["https://example.com"])

        assert not policy.is_allowed("null")
        assert not policy.is_allowed("file://")

    def test_cors_headers_echo_origin(self, policy):
        headers = policy.cors_headers("http://localhost:3000")

        assert headers["Access-Control-Allow-Origin"] == "http://localhost:3000"
        assert headers["Vary"] == "Origin"
        assert "POST" in headers["Access-Control-Allow-Methods"]
