"""
Environment Configuration for VAS Settlement
Centralized access to environment variables for:
- Reloadly API configuration (top-ups and utilities audiences)
- Flutterwave payment verification
- Markup percentages, timeouts and token cache tuning
"""

import os
from dotenv import load_dotenv

load_dotenv()


def _env_float(name, default):
    value = os.environ.get(name)
    if value is None or value.strip() == '':
        return default
    return float(value)


def _env_bool(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


# Reloadly API Configuration
RELOADLY_CLIENT_ID = os.environ.get('RELOADLY_CLIENT_ID', '')
RELOADLY_CLIENT_SECRET = os.environ.get('RELOADLY_CLIENT_SECRET', '')
RELOADLY_AUTH_URL = os.environ.get('RELOADLY_AUTH_URL', 'https://auth.reloadly.com/oauth/token')
RELOADLY_TOPUPS_URL = os.environ.get('RELOADLY_TOPUPS_URL', 'https://topups.reloadly.com')
RELOADLY_UTILITIES_URL = os.environ.get('RELOADLY_UTILITIES_URL', 'https://utilities.reloadly.com')

# Audiences double as base URLs on Reloadly
TOPUPS_AUDIENCE = RELOADLY_TOPUPS_URL
UTILITIES_AUDIENCE = RELOADLY_UTILITIES_URL

# Flutterwave API Configuration
FLUTTERWAVE_SECRET_KEY = os.environ.get('FLUTTERWAVE_SECRET_KEY', '')
FLUTTERWAVE_BASE_URL = os.environ.get('FLUTTERWAVE_BASE_URL', 'https://api.flutterwave.com')

# Delivery country
VAS_COUNTRY_CODE = os.environ.get('VAS_COUNTRY_CODE', 'NG')
VAS_COUNTRY_DIAL_PREFIX = os.environ.get('VAS_COUNTRY_DIAL_PREFIX', '+234')

# Markup fractions per service category
CATEGORY_MARKUPS = {
    'airtime': _env_float('VAS_MARKUP_AIRTIME', 0.02),
    'data': _env_float('VAS_MARKUP_DATA', 0.05),
    'cableTV': _env_float('VAS_MARKUP_CABLE_TV', 0.03),
    'electricity': _env_float('VAS_MARKUP_ELECTRICITY', 0.02),
}

# Token cache
TOKEN_EXPIRY_BUFFER_SECONDS = int(_env_float('TOKEN_EXPIRY_BUFFER_SECONDS', 300))
DEFAULT_TOKEN_EXPIRES_IN = int(_env_float('DEFAULT_TOKEN_EXPIRES_IN', 86400))

# Outbound timeouts (seconds)
VENDOR_HTTP_TIMEOUT = _env_float('VENDOR_HTTP_TIMEOUT', 15)
PAYMENT_HTTP_TIMEOUT = _env_float('PAYMENT_HTTP_TIMEOUT', 12)

VAS_SYNC_ON_STARTUP = _env_bool('VAS_SYNC_ON_STARTUP', False)


def missing_credentials():
    """Names of required secrets that are not configured."""
    required = {
        'FLUTTERWAVE_SECRET_KEY': FLUTTERWAVE_SECRET_KEY,
        'RELOADLY_CLIENT_ID': RELOADLY_CLIENT_ID,
        'RELOADLY_CLIENT_SECRET': RELOADLY_CLIENT_SECRET,
    }
    return [name for name, value in required.items() if not value]
