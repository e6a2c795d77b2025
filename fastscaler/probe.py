from __future__ import annotations

import re
import time

import httpx

from .config import ServiceSpec
from .errors import ProbeParseError, ProbeTransportError

ACTIVE_CONNECTIONS_MARKER = "Active connections:"

_INT_RE = re.compile(r"[+-]?[0-9]+")


def parse_active_connections(text: str) -> int:
    """Extract the active connection count from a stub_status style page.

    Uses the first line containing the marker. Spaces after the marker are
    ignored. A page without the marker is an error, never a count of 0.
    """
    for line in text.splitlines():
        idx = line.find(ACTIVE_CONNECTIONS_MARKER)
        if idx == -1:
            continue
        raw = line[idx + len(ACTIVE_CONNECTIONS_MARKER):].replace(" ", "")
        if not _INT_RE.fullmatch(raw):
            raise ProbeParseError(f"invalid active connections value: {raw!r}")
        return int(raw)
    raise ProbeParseError(f"{ACTIVE_CONNECTIONS_MARKER!r} line not found in status page")


def _time_left(deadline: float, url: str) -> float:
    left = deadline - time.monotonic()
    if left <= 0:
        raise ProbeTransportError(f"GET {url} did not complete within the check interval")
    return left


def fetch_active_connections(spec: ServiceSpec, *, transport: httpx.BaseTransport | None = None) -> int:
    """GET the service status page and return its active connection count.

    The whole exchange shares one deadline of ``check_interval`` seconds, so a
    slow or dripping status page never holds the loop past its next tick.
    httpx timeouts are per phase; each phase gets only the time left and the
    body is streamed so the deadline is checked between chunks.
    Certificates are not verified: status pages are internal endpoints,
    often self-signed.
    """
    deadline = time.monotonic() + spec.check_interval
    url = spec.status_url
    headers = {}
    if spec.status_auth_name:
        headers[spec.status_auth_name] = spec.status_auth_value

    try:
        with httpx.Client(verify=False, follow_redirects=False, transport=transport) as client:
            with client.stream("GET", url, headers=headers, timeout=_time_left(deadline, url)) as resp:
                if not resp.is_success:
                    raise ProbeTransportError(f"GET {url} returned HTTP {resp.status_code}")
                body = bytearray()
                for chunk in resp.iter_bytes():
                    body.extend(chunk)
                    _time_left(deadline, url)
                text = body.decode(resp.encoding or "utf-8", errors="replace")
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise ProbeTransportError(f"GET {url} failed: {type(e).__name__}: {e}") from e
    except UnicodeEncodeError as e:
        # Header values must be ASCII.
        raise ProbeTransportError(f"GET {url} has a non-ASCII auth header: {e}") from e

    return parse_active_connections(text)
