from __future__ import annotations


class DomainError(Exception):
    """Base for domain errors."""


class PaymentProviderNotConfiguredError(DomainError):
    """Stripe secret key is not configured."""


class CheckoutValidationError(DomainError):
    """Checkout request is missing fields or names an unknown plan."""


class CheckoutError(DomainError):
    """Checkout session could not be created."""

    def __init__(self, message: str, *, stage: str | None = None):
        super().__init__(message)
        self.stage = stage


class BillingError(DomainError):
    """Payment provider call or webhook payload failed."""


class ProfileStoreError(DomainError):
    """Profile store call failed."""


class ProfileCreationError(DomainError):
    """Profile record was missing and could not be created."""


class ProfileNotFoundError(DomainError):
    """Profile record does not exist."""


class ProfileValidationError(DomainError):
    """Profile update parameters are invalid."""


class AuthProviderError(DomainError):
    """Identity provider rejected the request or could not be reached."""


class NotAuthenticatedError(DomainError):
    """No user is signed in."""
