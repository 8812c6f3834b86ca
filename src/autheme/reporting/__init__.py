"""Remote reporting of scored runs.

Provides the payload builder, the httpx transport, and the fire-and-forget
sink that connects them without ever blocking the monitored host.

Public API::

    from autheme.reporting import ReportingSink, build_payload
    from autheme.reporting.http_client import post_json
"""

from __future__ import annotations

from autheme.reporting.payload import (
    SUMMARY_BYTE_BUDGET,
    build_payload,
    truncate_summary,
)
from autheme.reporting.sink import ReportingSink

__all__ = [
    "SUMMARY_BYTE_BUDGET",
    "ReportingSink",
    "build_payload",
    "truncate_summary",
]
