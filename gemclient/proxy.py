"""Proxy and SSL configuration for the httpx clients used by gemclient.

Supports:
- Standard proxy environment variables (HTTP_PROXY, HTTPS_PROXY, NO_PROXY)
- GEMCLIENT_NO_PROXY for exact host matching (unlike NO_PROXY suffix matching)
- Corporate CA bundles via REQUESTS_CA_BUNDLE / SSL_CERT_FILE
"""

import logging
import os
import urllib.parse
from typing import Any, List, Optional

import httpx

logger = logging.getLogger(__name__)

# ============================================================
# Environment Variables
# ============================================================

ENV_HTTPS_PROXY = "HTTPS_PROXY"
ENV_HTTP_PROXY = "HTTP_PROXY"
ENV_NO_PROXY = "NO_PROXY"
ENV_GEMCLIENT_NO_PROXY = "GEMCLIENT_NO_PROXY"
ENV_CA_BUNDLES = ("REQUESTS_CA_BUNDLE", "SSL_CERT_FILE")


# ============================================================
# Configuration Functions
# ============================================================

def get_proxy_url() -> Optional[str]:
    """Get proxy URL from environment variables.

    Checks HTTPS_PROXY and HTTP_PROXY (both cases).

    Returns:
        Proxy URL or None if not configured.
    """
    for var in [ENV_HTTPS_PROXY, ENV_HTTPS_PROXY.lower(),
                ENV_HTTP_PROXY, ENV_HTTP_PROXY.lower()]:
        url = os.environ.get(var)
        if url:
            return url
    return None


def get_ca_bundle() -> Optional[str]:
    """Get the CA bundle path from REQUESTS_CA_BUNDLE or SSL_CERT_FILE."""
    for var in ENV_CA_BUNDLES:
        path = os.environ.get(var)
        if path:
            return path
    return None


def _split_hosts(value: str) -> List[str]:
    return [h.strip().lower() for h in value.split(",") if h.strip()]


def _matches_no_proxy(host: str, port: Optional[int], entry: str) -> bool:
    """Check if a host[:port] matches a single NO_PROXY entry.

    - '*' matches everything
    - 'host:port' matches only when both match
    - 'domain.com' and '.domain.com' match the domain and its subdomains
    """
    if entry == "*":
        return True

    entry_host = entry
    entry_port = None
    if ":" in entry:
        head, _, tail = entry.rpartition(":")
        if tail.isdigit():
            entry_host, entry_port = head, int(tail)

    if entry_port is not None and port != entry_port:
        return False

    bare = entry_host.lstrip(".")
    if not bare:
        return False
    return host == bare or host.endswith("." + bare)


def should_bypass_proxy(url: str) -> bool:
    """Check if a URL should bypass the proxy.

    GEMCLIENT_NO_PROXY entries must match the host exactly; NO_PROXY
    entries use the conventional suffix matching.
    """
    parsed = urllib.parse.urlparse(url)
    host = parsed.hostname
    if not host:
        return False
    host = host.lower()

    if host in _split_hosts(os.environ.get(ENV_GEMCLIENT_NO_PROXY, "")):
        return True

    no_proxy = os.environ.get(ENV_NO_PROXY) or os.environ.get(ENV_NO_PROXY.lower(), "")
    return any(_matches_no_proxy(host, parsed.port, e) for e in _split_hosts(no_proxy))


# ============================================================
# httpx Support
# ============================================================

def get_httpx_client(base_url: Optional[str] = None, **client_kwargs: Any) -> httpx.Client:
    """Create an httpx Client with proxy and SSL configuration.

    Args:
        base_url: URL the client will talk to; used to decide whether the
            proxy applies.
        **client_kwargs: Additional kwargs for ``httpx.Client``. Explicit
            ``verify``, ``proxy`` or ``transport`` values are preserved.

    Returns:
        Configured httpx.Client.
    """
    ca_bundle = get_ca_bundle()
    if ca_bundle:
        if os.path.isfile(ca_bundle):
            client_kwargs.setdefault("verify", ca_bundle)
        else:
            logger.warning(
                "SSL CA bundle not found: %s (from REQUESTS_CA_BUNDLE or "
                "SSL_CERT_FILE). Falling back to default certificate verification.",
                ca_bundle,
            )

    proxy_url = get_proxy_url()
    if proxy_url and "transport" not in client_kwargs:
        if base_url and should_bypass_proxy(base_url):
            logger.debug("Bypassing proxy for %s", base_url)
        else:
            client_kwargs.setdefault("proxy", proxy_url)

    return httpx.Client(**client_kwargs)
