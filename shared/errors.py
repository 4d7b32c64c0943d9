"""
Error taxonomy for the cart promotion handler.

Ineligibility is not an error: a promotion that fails its eligibility check
simply isn't activated. These exceptions cover the cases that abort (or, for
exclusion providers, may abort) the enclosing cart mutation.
"""

from typing import Optional


class PromotionHandlerError(Exception):
    """Base class for all promotion handler errors."""


class StorageError(PromotionHandlerError):
    """
    A read against the promotion store failed.

    Propagated to the caller unchanged. Rolling back any adjustments created
    earlier in the same request is the caller's job.
    """

    def __init__(self, message: str, source: Optional[str] = None):
        super().__init__(message)
        self.source = source


class ExclusionProviderFailure(PromotionHandlerError):
    """An exclusion provider raised or returned something other than ids."""

    def __init__(self, provider: str, reason: str):
        super().__init__(f"Exclusion provider {provider} failed: {reason}")
        self.provider = provider
        self.reason = reason


class ConfigurationError(PromotionHandlerError):
    """Settings reference something that can't be loaded (e.g. a provider path)."""
