"""autheme exception hierarchy.

All public exceptions inherit from AuthemeError, giving callers a single
base class to catch when they want to handle any autheme-specific failure
without swallowing unrelated errors.
"""


class AuthemeError(Exception):
    """Base exception for all autheme errors."""


class ConfigError(AuthemeError):
    """Raised when monitor configuration is invalid.

    Covers non-numeric or non-positive thresholds, unreadable config
    files, and malformed configuration documents.
    """


class EventError(AuthemeError):
    """Raised when a recorded event log cannot be interpreted.

    Live host events never raise this: the ingestion adapter falls back
    to field defaults instead. It is used when a whole event log (for
    ``autheme replay``) is structurally unusable.
    """


class ScoringError(AuthemeError):
    """Raised when trust score computation is misconfigured.

    Covers invalid scoring weights and thresholds that would make the
    dimension formulas undefined.
    """


class ReportError(AuthemeError):
    """Raised when a run report cannot be delivered.

    Covers network failures, timeouts, non-2xx responses, and payloads
    that cannot be serialized. Always caught at the reporting boundary.
    """
