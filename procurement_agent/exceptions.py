"""
Error types for the Procurement Agent.

Domain errors carry a stable ``code`` and an actionable ``user_message`` that
the router shows to the user. Provider errors are recovered by the response
fallback chain and never reach the user directly.
"""

from typing import Optional


class ProcurementAgentError(Exception):
    """Base class for all agent errors."""


class ConfigurationError(ProcurementAgentError):
    """Fatal startup problem (missing credentials, unreachable back-office)."""


# =============================================================================
# DOMAIN ERRORS
# =============================================================================


class DomainError(ProcurementAgentError):
    """A business rule prevented the request from completing."""

    code = "DOMAIN_ERROR"
    default_message = "I couldn't complete that request."

    def __init__(self, message: Optional[str] = None, user_message: Optional[str] = None):
        super().__init__(message or self.default_message)
        self.user_message = user_message or self.default_message


class NoSuppliersFound(DomainError):
    code = "NO_SUPPLIERS_FOUND"
    default_message = (
        "I couldn't find any suppliers for that product. "
        "Try a different material or remove the region filter."
    )


class NoActiveQuote(DomainError):
    code = "NO_ACTIVE_QUOTE"
    default_message = (
        "There is no active RFQ to order from. "
        "Please generate an RFQ before placing an order, for example: "
        "\"10 units of <product>, send RFQ\"."
    )


class InvalidCompanyNumber(DomainError):
    code = "INVALID_COMPANY_NUMBER"

    def __init__(self, company_number: int, line_count: int):
        self.company_number = company_number
        self.line_count = line_count
        super().__init__(
            f"Company {company_number} is outside 1..{line_count}",
            user_message=(
                f"Company {company_number} is not part of the current quote. "
                f"Choose a company between 1 and {line_count}."
            ),
        )


class PlacementRejected(DomainError):
    code = "PLACEMENT_REJECTED"
    default_message = (
        "The order could not be placed because the back-office rejected it. "
        "Your quote is still active, so you can try again or choose another company."
    )


# =============================================================================
# PROVIDER ERRORS
# =============================================================================


class ProviderError(ProcurementAgentError):
    """A text-generation provider call failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code
        # Index of the pooled credential the failed call used, if any
        self.slot_index: Optional[int] = None


class QuotaExceededError(ProviderError):
    """The provider rejected the call for quota or rate-limit reasons."""

    def __init__(self, message: str = "quota exceeded", status_code: Optional[int] = 429):
        super().__init__(message, status_code=status_code)


class ProviderTimeout(ProviderError):
    """The provider did not answer within the configured timeout."""


class ProviderUnavailable(ProviderError):
    """Transport or server-side failure unrelated to quota."""


class CredentialsExhausted(ProviderError):
    """Every credential in the pool is excluded until the cool-down elapses."""


# =============================================================================
# COLLABORATOR ERRORS
# =============================================================================


class CollaboratorUnavailable(ProcurementAgentError):
    """A back-office collaborator timed out or failed at the transport level."""
