"""Typed failures raised by LLM providers.

Callers branch on these to choose between an actionable message for the
user ("configure the provider", "retry later") and a silent fallback to the
rule and similarity strategies.
"""


class ClassificationError(Exception):
    """Base class for LLM provider failures."""

    kind = "error"


class ServiceUnavailableError(ClassificationError):
    """The provider is disabled, has no credentials, or rejected them."""

    kind = "service_unavailable"


class RateLimitedError(ClassificationError):
    """The provider refused the call because of rate limits or quota."""

    kind = "rate_limited"


class TransientError(ClassificationError):
    """Network, server or malformed-output failure; may succeed later."""

    kind = "transient"
