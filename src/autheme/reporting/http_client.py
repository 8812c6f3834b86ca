"""Async HTTP transport for run reports.

Provides a thin wrapper around ``httpx.AsyncClient`` with a standard
timeout, user-agent header and bearer authentication. Every failure mode
(timeout, non-2xx status, connection error, unserializable payload) is
raised as ``ReportError`` so that the reporting sink has a single
exception type to absorb.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from autheme import __version__
from autheme.exceptions import ReportError

logger = logging.getLogger(__name__)

# Timeout for report submissions (seconds).
DEFAULT_TIMEOUT: float = 10.0

# User-Agent sent with every request.
USER_AGENT: str = f"autheme-reporter/{__version__}"


async def post_json(
    url: str,
    payload: dict[str, Any],
    *,
    api_key: str,
    timeout: float = DEFAULT_TIMEOUT,
) -> int:
    """POST a JSON payload with bearer authentication.

    Args:
        url: The ingest endpoint.
        payload: JSON-serializable report body.
        api_key: Bearer credential.
        timeout: Request timeout in seconds.

    Returns:
        The HTTP status code of the (successful) response.

    Raises:
        ReportError: On timeouts, HTTP errors, connection errors, or a
            payload that cannot be serialized.
    """
    headers = {
        "User-Agent": USER_AGENT,
        "Authorization": f"Bearer {api_key}",
    }
    try:
        async with httpx.AsyncClient(timeout=timeout, headers=headers) as client:
            resp = await client.post(url, json=payload)
            resp.raise_for_status()
    except httpx.TimeoutException as exc:
        raise ReportError(f"Timeout posting report to {url}") from exc
    except httpx.HTTPStatusError as exc:
        raise ReportError(
            f"HTTP {exc.response.status_code} from {url}"
        ) from exc
    except httpx.HTTPError as exc:
        raise ReportError(f"Request error for {url}: {exc}") from exc
    except (TypeError, ValueError) as exc:
        raise ReportError(f"Report payload is not serializable: {exc}") from exc

    logger.debug("Report accepted by %s (HTTP %d)", url, resp.status_code)
    return resp.status_code
