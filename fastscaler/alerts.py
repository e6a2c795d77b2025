from __future__ import annotations

import httpx

from .errors import NotificationError


def scaleout_message(service: str, active_conns: int, cur_count: int, new_count: int) -> str:
    return (
        f"scaleout {service} service\n"
        "```\n"
        f"ActiveConnections: {active_conns}\n"
        f"DesiredCount(cur): {cur_count}\n"
        f"DesiredCount(new): {new_count}\n"
        "```"
    )


def notify_scaleout(
    target: str,
    service: str,
    active_conns: int,
    cur_count: int,
    new_count: int,
    *,
    timeout_s: float = 5,
    transport: httpx.BaseTransport | None = None,
) -> bool:
    """Post a scale-out message to a Slack-compatible webhook.

    Returns False when no target is configured. Raises NotificationError if the
    post fails; callers log it and carry on, the scale-out already happened.
    """
    if not target:
        return False

    payload = {"text": scaleout_message(service, active_conns, cur_count, new_count)}
    try:
        with httpx.Client(timeout=timeout_s, transport=transport) as client:
            resp = client.post(target, json=payload)
    except (httpx.HTTPError, httpx.InvalidURL) as e:
        raise NotificationError(f"webhook post failed: {type(e).__name__}: {e}") from e
    if not resp.is_success:
        raise NotificationError(f"webhook returned HTTP {resp.status_code}")
    return True
