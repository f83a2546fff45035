"""Payment utilities used by settlement for normalizing the fields a
verified payment carries in its metadata.

This module provides small, deterministic helpers:

- normalize_service_category(value) -> str | None
- validate_service_category(value) -> bool
- format_phone_number(value, dial_prefix) -> str
- local_phone_number(value, dial_prefix) -> str
- extract_destination(meta, category) -> str | None

The functions are intentionally lightweight and dependency-free so
they can be used during request validation without side effects.
"""

from typing import Optional

# Canonical mappings for service categories. Frontends and payment
# metadata spell these several ways; catalog keys must stay stable.
_SERVICE_CATEGORY_MAP = {
	'airtime': 'airtime',
	'vtu': 'airtime',
	'data': 'data',
	'data_bundle': 'data',
	'bundle': 'data',
	'cabletv': 'cableTV',
	'cable_tv': 'cableTV',
	'cable': 'cableTV',
	'tv': 'cableTV',
	'electricity': 'electricity',
	'power': 'electricity',
	'electricity_bill': 'electricity',
}

# Metadata keys that may carry a bill account identifier, in preference order
_ACCOUNT_KEYS = ('accountNumber', 'smartcardNumber', 'meterNumber', 'customerId')


def _normalize_lookup(value: Optional[str], mapping: dict) -> Optional[str]:
	"""Internal helper: normalize a value using mapping, or return None.

	Accepts None and returns None. Performs case-insensitive matching and
	trims whitespace.
	"""
	if value is None:
		return None
	if not isinstance(value, str):
		value = str(value)
	key = value.strip().lower()
	return mapping.get(key)


def normalize_service_category(value: Optional[str]) -> Optional[str]:
	"""Return a canonical service category or None.

	Example: 'CABLE_TV' -> 'cableTV', 'Airtime' -> 'airtime'
	"""
	return _normalize_lookup(value, _SERVICE_CATEGORY_MAP)


def validate_service_category(value: Optional[str]) -> bool:
	"""Return True if the provided service category is recognized."""
	return _normalize_lookup(value, _SERVICE_CATEGORY_MAP) is not None


def format_phone_number(value: str, dial_prefix: str = '+234') -> str:
	"""Local number to international form.

	'+234...' passes through unchanged, '080...' -> '+23480...',
	a bare 10-digit '80...' -> '+23480...'.
	"""
	number = str(value).strip().replace(' ', '')
	if number.startswith('+'):
		return number
	if number.startswith('0'):
		return f'{dial_prefix}{number[1:]}'
	return f'{dial_prefix}{number}'


def local_phone_number(value: str, dial_prefix: str = '+234') -> str:
	"""International number with the country dial prefix stripped."""
	number = format_phone_number(value, dial_prefix)
	if number.startswith(dial_prefix):
		return number[len(dial_prefix):]
	return number.lstrip('+')


def extract_destination(meta: dict, category: str) -> Optional[str]:
	"""Delivery target from payment metadata.

	Bills (cableTV, electricity) go to an account identifier when one is
	present; everything else goes to the phone number.
	"""
	if not meta:
		return None
	if category in ('cableTV', 'electricity'):
		for key in _ACCOUNT_KEYS:
			if meta.get(key):
				return str(meta[key]).strip()
	phone = meta.get('phone') or meta.get('phoneNumber')
	return str(phone).strip() if phone else None
