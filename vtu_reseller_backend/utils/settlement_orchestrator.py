"""
Settlement Orchestrator - turns a verified payment into a vendor delivery

Per request:
    RECEIVED -> VERIFIED -> RESOLVED -> PRICED -> DELIVERED | FAILED

- VERIFIED: payment provider says success/successful for exactly our reference
- RESOLVED: catalog product found and has a vendor operator id
- PRICED: vendor-facing amount computed (markup removed, or fixed plan cost)
- DELIVERED: vendor accepted the delivery keyed by the payment reference

Nothing is retried here. Callers resubmit the same reference after a failed
delivery; the reference doubles as the vendor idempotency key so a resubmission
never delivers twice.
"""

import logging
from collections import deque
from datetime import datetime
from typing import Any, Dict, Optional

from config.environment import VAS_COUNTRY_DIAL_PREFIX
from utils.payment_utils import extract_destination, format_phone_number, normalize_service_category
from utils.vas_errors import (
    DeliveryFailed,
    PaymentVerificationFailed,
    ProductNotConfigured,
    ProductNotFound,
    TransportError,
    VASError,
)

logger = logging.getLogger(__name__)
# Realized margin goes to its own logger and never into responses
margin_logger = logging.getLogger('vas.margin')

RECEIVED = 'RECEIVED'
VERIFIED = 'VERIFIED'
RESOLVED = 'RESOLVED'
PRICED = 'PRICED'
DELIVERED = 'DELIVERED'
FAILED = 'FAILED'

_ALLOWED_TRANSITIONS = {
    RECEIVED: (VERIFIED, FAILED),
    VERIFIED: (RESOLVED, FAILED),
    RESOLVED: (PRICED, FAILED),
    PRICED: (DELIVERED, FAILED),
    DELIVERED: (),
    FAILED: (),
}


class SettlementRequest:
    """One inbound settlement call. Discarded after the response is built."""

    def __init__(self, reference: str):
        self.reference = reference
        self.state = RECEIVED
        self.history = [(RECEIVED, datetime.utcnow())]
        self.metadata = {}
        self.category = None
        self.product = None
        self.customer_amount = None
        self.destination = None
        self.vendor_amount = None
        self.margin = None
        self.transaction_id = None
        self.vendor_status = None
        self.failure = None

    def transition(self, new_state: str):
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(f'Illegal settlement transition {self.state} -> {new_state}')
        self.state = new_state
        self.history.append((new_state, datetime.utcnow()))
        logger.info(f"Settlement {self.reference}: {new_state}")

    def fail(self, error: VASError):
        failed_at = self.state
        self.failure = error
        if error.reference is None:
            error.reference = self.reference
        error.metadata.setdefault('failedAt', failed_at)
        self.transition(FAILED)

    def to_response(self) -> Dict[str, Any]:
        """Customer-facing result. Never includes vendor amount or margin."""
        return {
            'success': self.state == DELIVERED,
            'message': f'Service delivered successfully. Transaction ID: {self.transaction_id}',
            'reference': self.reference,
            'status': self.state,
            'transactionId': self.transaction_id,
        }


class SettlementOrchestrator:
    def __init__(self, catalog, pricing_engine, verifier, vendor_client,
                 dial_prefix: str = VAS_COUNTRY_DIAL_PREFIX, ledger_size: int = 500):
        self.catalog = catalog
        self.pricing_engine = pricing_engine
        self.verifier = verifier
        self.vendor_client = vendor_client
        self.dial_prefix = dial_prefix
        self.margin_ledger = deque(maxlen=ledger_size)

    def settle(self, reference: str) -> Dict[str, Any]:
        """
        Verify, resolve, price and deliver one payment.
        Returns the customer-facing result on success; raises a VASError otherwise.
        """
        request = SettlementRequest(reference)
        try:
            self._verify(request)
            self._resolve(request)
            self._price(request)
            self._deliver(request)
        except VASError as e:
            request.fail(e)
            logger.warning(f"Settlement {request.reference} failed at "
                           f"{e.metadata.get('failedAt')}: {e.kind} - {e}")
            self._record_margin(request)
            raise

        self._record_margin(request)
        return request.to_response()

    def check_status(self, reference: str) -> Dict[str, Any]:
        """Delivery status last known to the vendor for this payment reference."""
        return self.vendor_client.check_status(reference)

    # ==================== STATE STEPS ====================

    def _verify(self, request: SettlementRequest):
        if not request.reference:
            raise PaymentVerificationFailed('Transaction reference is required.')

        verification = self.verifier.verify(request.reference)

        if (verification.get('status') != 'success'
                or verification.get('innerStatus') != 'successful'
                or verification.get('reference') != request.reference):
            raise PaymentVerificationFailed(
                'Payment verification failed.',
                detail=f"status={verification.get('status')} "
                       f"innerStatus={verification.get('innerStatus')} "
                       f"reference={verification.get('reference')}",
            )

        amount = _as_number(verification.get('amount'))
        if amount is None or amount <= 0:
            raise PaymentVerificationFailed(
                'Payment verification failed.',
                detail=f"Invalid paid amount: {verification.get('amount')!r}",
            )

        request.customer_amount = amount
        metadata = verification.get('metadata')
        request.metadata = metadata if isinstance(metadata, dict) else {}
        request.transition(VERIFIED)

    def _resolve(self, request: SettlementRequest):
        meta = request.metadata
        category = normalize_service_category(meta.get('service'))
        if category is None:
            raise ProductNotFound(f"Unsupported service: {meta.get('service')!r}")

        lookup_key = meta.get('network') if category == 'airtime' else meta.get('planId')
        product = self.catalog.get(category, lookup_key)
        if product is None:
            raise ProductNotFound(f'This product ({category}:{lookup_key}) is not available.')
        if not product.is_configured:
            logger.error(f"Configuration Error: No operatorId for {category}:{lookup_key}")
            raise ProductNotConfigured(f'This product ({category}:{lookup_key}) is not configured.')
        if product.is_fixed_denomination and product.base_price is None:
            logger.error(f"Configuration Error: No base price for {category}:{lookup_key}")
            raise ProductNotConfigured(
                f'This product ({category}:{lookup_key}) is not configured.',
                detail='Fixed plan has no base price',
            )

        destination = extract_destination(meta, category)
        if not destination:
            raise PaymentVerificationFailed(
                'Payment verification failed.',
                detail='Payment metadata carries no delivery destination',
            )

        request.category = category
        request.product = product
        request.destination = destination
        request.transition(RESOLVED)

    def _price(self, request: SettlementRequest):
        vendor_amount = self.pricing_engine.vendor_amount(request.product, request.customer_amount)
        if vendor_amount <= 0:
            raise PaymentVerificationFailed(
                'Payment verification failed.',
                detail=f'Paid amount {request.customer_amount} is too small to deliver',
            )

        request.vendor_amount = vendor_amount
        request.margin = self.pricing_engine.calculate_margin(request.customer_amount, vendor_amount)
        request.transition(PRICED)

    def _deliver(self, request: SettlementRequest):
        product = request.product
        if request.category in ('airtime', 'data'):
            destination = format_phone_number(request.destination, self.dial_prefix)
        else:
            destination = request.destination

        try:
            outcome = self.vendor_client.deliver(
                request.category,
                product.operator_id,
                request.vendor_amount,
                destination,
                request.reference,
            )
        except TransportError as e:
            raise DeliveryFailed(e.message, detail=e.detail) from e

        request.transaction_id = outcome.get('transactionId')
        request.vendor_status = outcome.get('status')
        request.transition(DELIVERED)

    def _record_margin(self, request: SettlementRequest):
        if request.margin is None:
            return
        entry = {
            'reference': request.reference,
            'service': request.category,
            'productKey': request.product.product_key,
            'state': request.state,
            'recordedAt': datetime.utcnow(),
        }
        entry.update(request.margin)
        self.margin_ledger.append(entry)
        margin_logger.info(
            f"{request.reference} {request.category}:{request.product.product_key} "
            f"{request.state} selling={request.margin['selling_price']} "
            f"cost={request.margin['cost_price']} margin={request.margin['margin']}"
        )


def _as_number(value) -> Optional[float]:
    if isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None
