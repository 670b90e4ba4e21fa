"""Tests for gemclient.proxy: NO_PROXY / GEMCLIENT_NO_PROXY handling and CA bundles."""

import os
from unittest import mock

import httpx

from gemclient.proxy import (
    _matches_no_proxy,
    get_ca_bundle,
    get_httpx_client,
    get_proxy_url,
    should_bypass_proxy,
)


def capture_client_kwargs(**kwargs):
    """Call get_httpx_client and return the kwargs passed to httpx.Client."""
    captured = {}
    original_init = httpx.Client.__init__

    def capturing_init(self_client, **init_kwargs):
        captured.update(init_kwargs)
        return original_init(self_client, **init_kwargs)

    with mock.patch.object(httpx.Client, "__init__", capturing_init):
        client = get_httpx_client(**kwargs)
    client.close()
    return captured


# ============================================================
# _matches_no_proxy unit tests
# ============================================================


class TestMatchesNoProxy:
    """Test the individual NO_PROXY entry matching logic."""

    def test_wildcard_matches_everything(self):
        assert _matches_no_proxy("example.com", 443, "*") is True

    def test_exact_host_match(self):
        assert _matches_no_proxy("example.com", None, "example.com") is True

    def test_suffix_with_leading_dot(self):
        assert _matches_no_proxy("api.example.com", None, ".example.com") is True
        assert _matches_no_proxy("example.com", None, ".example.com") is True

    def test_no_partial_suffix_match(self):
        assert _matches_no_proxy("badexample.com", None, "example.com") is False

    def test_port_match(self):
        assert _matches_no_proxy("example.com", 8080, "example.com:8080") is True
        assert _matches_no_proxy("example.com", 443, "example.com:8080") is False

    def test_empty_entry(self):
        assert _matches_no_proxy("example.com", None, "") is False


# ============================================================
# should_bypass_proxy tests
# ============================================================


class TestShouldBypassProxy:
    """should_bypass_proxy with various env combos."""

    def test_no_env(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            assert should_bypass_proxy("https://generativelanguage.googleapis.com/v1beta/") is False

    def test_no_proxy_suffix(self):
        with mock.patch.dict(os.environ, {"NO_PROXY": "googleapis.com"}, clear=True):
            assert should_bypass_proxy("https://generativelanguage.googleapis.com/v1beta/") is True

    def test_lowercase_no_proxy(self):
        with mock.patch.dict(os.environ, {"no_proxy": ".internal"}, clear=True):
            assert should_bypass_proxy("http://gemini.internal:8080/") is True

    def test_gemclient_no_proxy_exact_only(self):
        env = {"GEMCLIENT_NO_PROXY": "googleapis.com"}
        with mock.patch.dict(os.environ, env, clear=True):
            assert should_bypass_proxy("https://googleapis.com/") is True
            assert should_bypass_proxy("https://generativelanguage.googleapis.com/") is False

    def test_host_case_insensitive(self):
        with mock.patch.dict(os.environ, {"GEMCLIENT_NO_PROXY": "Gemini.Test"}, clear=True):
            assert should_bypass_proxy("https://GEMINI.test/v1beta/") is True


# ============================================================
# Environment lookups
# ============================================================


class TestEnvironmentLookups:
    def test_https_proxy_preferred(self):
        env = {"HTTPS_PROXY": "http://secure:3128", "HTTP_PROXY": "http://plain:3128"}
        with mock.patch.dict(os.environ, env, clear=True):
            assert get_proxy_url() == "http://secure:3128"

    def test_lowercase_http_proxy(self):
        with mock.patch.dict(os.environ, {"http_proxy": "http://plain:3128"}, clear=True):
            assert get_proxy_url() == "http://plain:3128"

    def test_no_proxy_configured(self):
        with mock.patch.dict(os.environ, {}, clear=True):
            assert get_proxy_url() is None
            assert get_ca_bundle() is None

    def test_ca_bundle_order(self):
        env = {"REQUESTS_CA_BUNDLE": "/a.pem", "SSL_CERT_FILE": "/b.pem"}
        with mock.patch.dict(os.environ, env, clear=True):
            assert get_ca_bundle() == "/a.pem"


# ============================================================
# get_httpx_client
# ============================================================


class TestGetHttpxClient:
    """Verify the kwargs get_httpx_client passes to httpx.Client."""

    def test_proxy_applied(self):
        with mock.patch.dict(os.environ, {"HTTPS_PROXY": "http://proxy:3128"}, clear=True):
            captured = capture_client_kwargs(base_url="https://generativelanguage.googleapis.com/")
        assert captured["proxy"] == "http://proxy:3128"

    def test_proxy_bypassed(self):
        env = {"HTTPS_PROXY": "http://proxy:3128", "NO_PROXY": "googleapis.com"}
        with mock.patch.dict(os.environ, env, clear=True):
            captured = capture_client_kwargs(base_url="https://generativelanguage.googleapis.com/")
        assert "proxy" not in captured

    def test_transport_skips_proxy(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(200))
        with mock.patch.dict(os.environ, {"HTTPS_PROXY": "http://proxy:3128"}, clear=True):
            captured = capture_client_kwargs(transport=transport)
        assert "proxy" not in captured
        assert captured["transport"] is transport

    def test_ca_bundle_used_when_present(self, tmp_path):
        bundle = tmp_path / "corp.pem"
        bundle.write_text("-----BEGIN CERTIFICATE-----\n")
        with mock.patch.dict(os.environ, {"SSL_CERT_FILE": str(bundle)}, clear=True):
            with mock.patch("httpx.Client.__init__", return_value=None) as mock_init:
                get_httpx_client(timeout=5.0)
        assert mock_init.call_args.kwargs["verify"] == str(bundle)

    def test_missing_ca_bundle_ignored(self, caplog):
        with mock.patch.dict(os.environ, {"REQUESTS_CA_BUNDLE": "/nonexistent.pem"}, clear=True):
            captured = capture_client_kwargs(timeout=5.0)
        assert "verify" not in captured
        assert "SSL CA bundle not found" in caplog.text

    def test_caller_verify_preserved(self, tmp_path):
        bundle = tmp_path / "corp.pem"
        bundle.write_text("")
        with mock.patch.dict(os.environ, {"REQUESTS_CA_BUNDLE": str(bundle)}, clear=True):
            captured = capture_client_kwargs(verify=False)
        assert captured["verify"] is False
