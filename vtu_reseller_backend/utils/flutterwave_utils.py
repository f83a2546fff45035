"""
Flutterwave Payment Verification Utilities

Verifies a customer payment by its transaction reference (tx_ref) and
returns the fields settlement relies on:
    {status, innerStatus, reference, amount, currency, metadata}
"""

import logging
from typing import Any, Dict, Optional

import requests

from config.environment import FLUTTERWAVE_BASE_URL, FLUTTERWAVE_SECRET_KEY, PAYMENT_HTTP_TIMEOUT
from utils.vas_errors import PaymentVerificationFailed, TransportError

logger = logging.getLogger(__name__)


class FlutterwaveVerifier:
    def __init__(
        self,
        secret_key: str = FLUTTERWAVE_SECRET_KEY,
        base_url: str = FLUTTERWAVE_BASE_URL,
        timeout: float = PAYMENT_HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.secret_key = secret_key
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        self.session = session or requests.Session()

    def verify(self, reference: str) -> Dict[str, Any]:
        """Look up a payment by tx_ref. Does not judge the result; the orchestrator does."""
        url = f'{self.base_url}/v3/transactions/verify_by_reference'
        headers = {
            'Authorization': f'Bearer {self.secret_key}',
            'Content-Type': 'application/json',
        }

        try:
            response = self.session.get(
                url,
                headers=headers,
                params={'tx_ref': reference},
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.error(f"Flutterwave verification timed out for {reference}: {str(e)}")
            raise TransportError('Payment verification timed out', detail=str(e), reference=reference)
        except requests.exceptions.RequestException as e:
            logger.error(f"Flutterwave verification failed for {reference}: {str(e)}")
            raise TransportError('Unable to reach payment provider', detail=str(e), reference=reference)

        logger.info(f"Flutterwave verify {reference}: {response.status_code}")

        if response.status_code >= 500:
            raise TransportError(
                f'Payment provider error: {response.status_code}',
                detail=response.text[:500],
                reference=reference,
            )

        try:
            body = response.json()
        except ValueError:
            raise PaymentVerificationFailed(
                'Payment verification failed.',
                detail=f'Invalid response from payment provider: {response.text[:200]}',
                reference=reference,
            )

        if response.status_code != 200:
            raise PaymentVerificationFailed(
                'Payment verification failed.',
                detail=body.get('message') if isinstance(body, dict) else None,
                reference=reference,
            )

        if not isinstance(body, dict):
            raise PaymentVerificationFailed(
                'Payment verification failed.',
                detail=f'Unexpected response from payment provider: {response.text[:200]}',
                reference=reference,
            )

        data = body.get('data') or {}
        if not isinstance(data, dict):
            raise PaymentVerificationFailed(
                'Payment verification failed.',
                detail=f"Unexpected transaction data: {str(data)[:200]}",
                reference=reference,
            )

        metadata = data.get('meta') or data.get('meta_data') or {}
        if not isinstance(metadata, dict):
            metadata = {}

        return {
            'status': body.get('status'),
            'innerStatus': data.get('status'),
            'reference': data.get('tx_ref'),
            'amount': data.get('amount'),
            'currency': data.get('currency'),
            'metadata': metadata,
        }
