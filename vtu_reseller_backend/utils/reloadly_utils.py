"""
Reloadly API Utilities

Vendor client for:
- Operator listing (airtime/data) and biller listing (cable TV/electricity)
- Top-up delivery (airtime, data bundles)
- Bill payment delivery (cable TV, electricity)
- Transaction status lookup by our payment reference

Every call carries a timeout. Network failures surface as TransportError;
vendor rejections of a delivery surface as DeliveryFailed with the vendor's
message verbatim.
"""

import logging
from typing import Any, Dict, List, Optional

import requests

from config.environment import (
    RELOADLY_TOPUPS_URL,
    RELOADLY_UTILITIES_URL,
    TOPUPS_AUDIENCE,
    UTILITIES_AUDIENCE,
    VAS_COUNTRY_CODE,
    VAS_COUNTRY_DIAL_PREFIX,
    VENDOR_HTTP_TIMEOUT,
)
from utils.payment_utils import local_phone_number
from utils.vas_errors import DeliveryFailed, TransportError

logger = logging.getLogger(__name__)

TOPUPS_ACCEPT = 'application/com.reloadly.topups-v1+json'
UTILITIES_ACCEPT = 'application/com.reloadly.utilities-v1+json'

CABLE_TV_BILLER_TYPE = 'CABLE_TV'
ELECTRICITY_BILLER_TYPE = 'ELECTRICITY_BILL_PAYMENT'

TOPUP_SUCCESS_STATUSES = ('SUCCESSFUL',)
# Utilities accepts the order and settles it asynchronously under our referenceId
BILL_SUCCESS_STATUSES = ('SUCCESSFUL', 'PROCESSING')


class VendorRecord:
    """Read-only snapshot of one operator or biller from a listing call."""

    def __init__(self, vendor_id, name, country=None, denomination_type=None,
                 fixed_amounts=None, fx_rate=None, supports_data=False, service_type=None,
                 raw=None):
        self.vendor_id = vendor_id
        self.name = name or ''
        self.country = country
        self.denomination_type = denomination_type
        self.fixed_amounts = fixed_amounts or []
        self.fx_rate = fx_rate
        self.supports_data = supports_data
        self.service_type = service_type
        self.raw = raw or {}

    @classmethod
    def from_operator(cls, doc: Dict[str, Any]) -> 'VendorRecord':
        fx = doc.get('fx') or {}
        country = doc.get('country') or {}
        return cls(
            vendor_id=doc.get('operatorId', doc.get('id')),
            name=doc.get('name'),
            country=country.get('isoName') if isinstance(country, dict) else country,
            denomination_type=doc.get('denominationType'),
            fixed_amounts=doc.get('fixedAmounts'),
            fx_rate=fx.get('rate') if isinstance(fx, dict) else None,
            supports_data=bool(doc.get('bundle') or doc.get('data')),
            raw=doc,
        )

    @classmethod
    def from_biller(cls, doc: Dict[str, Any]) -> 'VendorRecord':
        country = doc.get('countryCode') or doc.get('country')
        if isinstance(country, dict):
            country = country.get('isoName')
        return cls(
            vendor_id=doc.get('billerId', doc.get('id')),
            name=doc.get('billerName', doc.get('name')),
            country=country,
            denomination_type=doc.get('denominationType'),
            service_type=doc.get('serviceType'),
            raw=doc,
        )

    @property
    def has_pricing_mode(self) -> bool:
        """Operator can be sold: FX rate or fixed denominations."""
        return bool(self.fx_rate) or self.denomination_type == 'FIXED'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.vendor_id,
            'name': self.name,
            'country': self.country,
            'denominationType': self.denomination_type,
            'fxRate': self.fx_rate,
            'serviceType': self.service_type,
        }

    def __repr__(self):
        return f'<VendorRecord {self.vendor_id} {self.name!r}>'


def _vendor_message(response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text[:500]
    if isinstance(body, dict):
        return body.get('message') or body.get('errorCode') or response.text[:500]
    return response.text[:500]


def _json_content(response) -> List[Dict[str, Any]]:
    try:
        body = response.json()
    except ValueError:
        return []
    if isinstance(body, dict):
        return body.get('content') or []
    return []


class ReloadlyClient:
    def __init__(
        self,
        token_cache,
        topups_url: str = RELOADLY_TOPUPS_URL,
        utilities_url: str = RELOADLY_UTILITIES_URL,
        country_code: str = VAS_COUNTRY_CODE,
        dial_prefix: str = VAS_COUNTRY_DIAL_PREFIX,
        timeout: float = VENDOR_HTTP_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        self.token_cache = token_cache
        self.topups_url = topups_url.rstrip('/')
        self.utilities_url = utilities_url.rstrip('/')
        self.country_code = country_code
        self.dial_prefix = dial_prefix
        self.timeout = timeout
        self.session = session or requests.Session()

    # ==================== HELPERS ====================

    def _topups_headers(self) -> Dict[str, str]:
        token = self.token_cache.get_token(TOPUPS_AUDIENCE)
        return {
            'Authorization': f'Bearer {token}',
            'Accept': TOPUPS_ACCEPT,
            'Content-Type': 'application/json',
        }

    def _utilities_headers(self) -> Dict[str, str]:
        token = self.token_cache.get_token_with_fallback(UTILITIES_AUDIENCE, TOPUPS_AUDIENCE)
        return {
            'Authorization': f'Bearer {token}',
            'Accept': UTILITIES_ACCEPT,
            'Content-Type': 'application/json',
        }

    def _request(self, method: str, url: str, headers: Dict[str, str], **kwargs):
        try:
            response = self.session.request(method, url, headers=headers, timeout=self.timeout, **kwargs)
        except requests.exceptions.Timeout as e:
            logger.error(f"Reloadly {method} {url} timed out: {str(e)}")
            raise TransportError('Reloadly API request timed out', detail=str(e))
        except requests.exceptions.RequestException as e:
            logger.error(f"Reloadly {method} {url} failed: {str(e)}")
            raise TransportError('Unable to connect to Reloadly', detail=str(e))

        logger.info(f"Reloadly {method} {url}: {response.status_code}")
        return response

    def _listing(self, url: str, headers: Dict[str, str], params: Dict[str, Any]) -> List[Dict[str, Any]]:
        response = self._request('GET', url, headers, params=params)
        if response.status_code != 200:
            raise TransportError(
                f'Reloadly listing error: {response.status_code}',
                detail=_vendor_message(response),
            )
        try:
            body = response.json()
        except ValueError:
            raise TransportError('Invalid response format from Reloadly', detail=response.text[:500])
        if isinstance(body, list):
            return body
        return body.get('content') or []

    # ==================== LISTINGS ====================

    def list_operators(self, country_code: Optional[str] = None) -> List[VendorRecord]:
        """Airtime/data operators for a country, in vendor order."""
        params = {
            'countryISO': country_code or self.country_code,
            'size': 200,
            'includeData': 'true',
        }
        content = self._listing(f'{self.topups_url}/operators', self._topups_headers(), params)
        return [VendorRecord.from_operator(doc) for doc in content]

    def list_billers(self, biller_type: str, country_code: Optional[str] = None) -> List[VendorRecord]:
        """Utility billers of one type (CABLE_TV, ELECTRICITY_BILL_PAYMENT), in vendor order."""
        params = {
            'countryISOCode': country_code or self.country_code,
            'type': biller_type,
            'size': 200,
        }
        content = self._listing(f'{self.utilities_url}/billers', self._utilities_headers(), params)
        return [VendorRecord.from_biller(doc) for doc in content]

    # ==================== DELIVERY ====================

    def deliver_topup(self, operator_id: int, amount: int, destination: str, idempotency_key: str) -> Dict[str, Any]:
        """Airtime or data bundle top-up. `destination` is the international phone number."""
        payload = {
            'operatorId': operator_id,
            'amount': amount,
            'useLocalAmount': True,
            'recipientPhone': {
                'countryCode': self.country_code,
                'number': local_phone_number(destination, self.dial_prefix),
            },
            'customIdentifier': idempotency_key,
        }
        logger.info(f"Reloadly top-up: operator={operator_id} amount={amount} ref={idempotency_key}")
        response = self._request('POST', f'{self.topups_url}/topups', self._topups_headers(), json=payload)
        return self._delivery_outcome(response, TOPUP_SUCCESS_STATUSES)

    def pay_bill(self, biller_id: int, amount: int, account_number: str, idempotency_key: str) -> Dict[str, Any]:
        """Cable TV or electricity bill payment to a smartcard/meter account."""
        payload = {
            'subscriberAccountNumber': account_number,
            'amount': amount,
            'billerId': biller_id,
            'useLocalAmount': True,
            'referenceId': idempotency_key,
        }
        logger.info(f"Reloadly bill payment: biller={biller_id} amount={amount} ref={idempotency_key}")
        response = self._request('POST', f'{self.utilities_url}/pay', self._utilities_headers(), json=payload)
        return self._delivery_outcome(response, BILL_SUCCESS_STATUSES)

    def deliver(self, category: str, operator_id: int, amount: int, destination: str, idempotency_key: str) -> Dict[str, Any]:
        if category in ('cableTV', 'electricity'):
            return self.pay_bill(operator_id, amount, destination, idempotency_key)
        return self.deliver_topup(operator_id, amount, destination, idempotency_key)

    def _delivery_outcome(self, response, success_statuses) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.status_code not in (200, 201) or not isinstance(body, dict):
            message = _vendor_message(response)
            logger.error(f"Reloadly delivery rejected: {response.status_code} - {message}")
            raise DeliveryFailed(message or 'Service delivery failed at vendor.', detail=message)

        status = str(body.get('status', '')).upper()
        outcome = {
            'status': status,
            'transactionId': body.get('transactionId', body.get('id')),
            'message': body.get('message'),
        }
        if status not in success_statuses:
            message = body.get('message') or 'Service delivery failed at vendor.'
            logger.error(f"Reloadly delivery status {status}: {message}")
            raise DeliveryFailed(message, detail=message, vendor_status=status)
        return outcome

    # ==================== STATUS ====================

    def check_status(self, reference: str) -> Dict[str, Any]:
        """Last delivery status the vendor knows for our reference (top-ups first, then bills)."""
        response = self._request(
            'GET',
            f'{self.topups_url}/topups/reports/transactions',
            self._topups_headers(),
            params={'customIdentifier': reference},
        )
        if response.status_code == 200:
            content = _json_content(response)
            if content:
                txn = content[0]
                return {
                    'found': True,
                    'status': txn.get('status'),
                    'operatorName': txn.get('operatorName'),
                    'transactionId': txn.get('transactionId'),
                    'message': f"Transaction {txn.get('customIdentifier', reference)} status: "
                               f"{txn.get('status')}. Operator: {txn.get('operatorName')}.",
                }

        response = self._request(
            'GET',
            f'{self.utilities_url}/transactions',
            self._utilities_headers(),
            params={'referenceId': reference},
        )
        if response.status_code == 200:
            content = _json_content(response)
            if content:
                txn = content[0].get('transaction', content[0])
                biller = txn.get('billDetails') or {}
                operator_name = biller.get('billerName') or txn.get('billerName')
                return {
                    'found': True,
                    'status': txn.get('status'),
                    'operatorName': operator_name,
                    'transactionId': txn.get('id'),
                    'message': f"Transaction {txn.get('referenceId', reference)} status: "
                               f"{txn.get('status')}. Operator: {operator_name}.",
                }

        return {
            'found': False,
            'status': None,
            'operatorName': None,
            'transactionId': None,
            'message': 'Transaction not found.',
        }
