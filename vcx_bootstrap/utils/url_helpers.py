from __future__ import annotations

from urllib.parse import urlparse, urlunparse

_LOCAL_HOSTS = {"localhost", "127.0.0.1", "0.0.0.0"}

HEALTH_PATH = "/agency"


def normalize_agency_endpoint(url: str, *, docker: bool = False) -> str:
    """Strip trailing slashes and, inside a container, remap loopback hosts.

    With ``docker`` set, ``localhost``-style hosts point at the container
    itself, so they are rewritten to ``host.docker.internal`` keeping port and
    credentials.
    """
    url = (url or "").strip().rstrip("/")
    if not docker or not url:
        return url

    parsed = urlparse(url)
    if (parsed.hostname or "").lower() not in _LOCAL_HOSTS:
        return url

    netloc = "host.docker.internal"
    if parsed.port:
        netloc = f"{netloc}:{parsed.port}"
    if parsed.username:
        auth = parsed.username if not parsed.password else f"{parsed.username}:{parsed.password}"
        netloc = f"{auth}@{netloc}"
    return urlunparse(parsed._replace(netloc=netloc))


def agency_health_url(endpoint: str) -> str:
    return f"{endpoint.rstrip('/')}{HEALTH_PATH}"
