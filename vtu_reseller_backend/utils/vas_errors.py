"""
VAS Settlement Error Taxonomy

Every failure surfaced by the token cache, vendor/payment clients, catalog
synchronizer and settlement orchestrator is one of these kinds:

- AuthenticationFailure: vendor credential exchange rejected
- TransportError: network failure or timeout (caller may retry)
- PaymentVerificationFailed: payment could not be verified (no delivery attempted)
- ProductNotFound / ProductNotConfigured: catalog gap (operator must fix)
- DeliveryFailed: vendor rejected or failed the delivery (safe to resubmit)
"""

from typing import Any, Dict, Optional


class VASError(Exception):
    """
    Base error for the settlement subsystem.

    `kind` is stable and equal to the class name so callers can branch on it
    without importing the classes.
    """

    http_status = 500
    operator_actionable = False
    default_user_message = 'An error occurred while processing your request.'

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        reference: Optional[str] = None,
        user_message: Optional[str] = None,
        **kwargs
    ):
        super().__init__(message)
        self.message = message
        self.detail = detail
        self.reference = reference
        self.user_message = user_message or message or self.default_user_message
        self.metadata = kwargs

    @property
    def kind(self) -> str:
        return self.__class__.__name__

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for API responses"""
        payload = {
            'success': False,
            'errorKind': self.kind,
            'message': self.user_message,
        }
        if self.operator_actionable:
            payload['operatorActionable'] = True
        return payload

    def __str__(self):
        if self.detail:
            return f'{self.message} ({self.detail})'
        return self.message


class AuthenticationFailure(VASError):
    """Vendor credential exchange was rejected. Cached tokens are left untouched."""

    http_status = 502
    default_user_message = 'Could not authenticate with the service provider.'


class TransportError(VASError):
    """Network failure or timeout talking to an external service."""

    http_status = 504
    default_user_message = 'The service provider could not be reached. Please try again.'


class PaymentVerificationFailed(VASError):
    """Payment status, inner status or reference did not check out."""

    http_status = 400
    default_user_message = 'Payment verification failed.'


class ProductNotFound(VASError):
    """No catalog product for the verified service/network/plan."""

    http_status = 404
    operator_actionable = True


class ProductNotConfigured(VASError):
    """Product exists but has no resolved vendor operator id."""

    http_status = 422
    operator_actionable = True


class DeliveryFailed(VASError):
    """
    Vendor rejected or failed the delivery call.
    `detail` carries the vendor's message verbatim.
    """

    http_status = 502
    default_user_message = 'Service delivery failed at vendor.'


__all__ = [
    'VASError',
    'AuthenticationFailure',
    'TransportError',
    'PaymentVerificationFailed',
    'ProductNotFound',
    'ProductNotConfigured',
    'DeliveryFailed',
]
