"""
VAS Settlement Services
Builds the catalog, vendor/payment clients, pricing engine, synchronizer and
orchestrator once, and owns them for the lifetime of the process.
"""
import logging
from typing import Any, Dict, Optional

from config.environment import TOPUPS_AUDIENCE, missing_credentials
from models import Catalog
from utils.catalog_sync import CatalogSynchronizer
from utils.dynamic_pricing_engine import get_pricing_engine
from utils.flutterwave_utils import FlutterwaveVerifier
from utils.reloadly_utils import ReloadlyClient
from utils.settlement_orchestrator import SettlementOrchestrator
from utils.token_cache import ReloadlyTokenCache
from utils.vas_errors import AuthenticationFailure

logger = logging.getLogger(__name__)


class VASServices:
    """Single owner of the catalog and everything that reads or writes it"""

    def __init__(
        self,
        catalog: Optional[Catalog] = None,
        token_cache=None,
        vendor_client=None,
        verifier=None,
        pricing_engine=None,
    ):
        self.catalog = catalog if catalog is not None else Catalog.default()
        self.token_cache = token_cache or ReloadlyTokenCache()
        self.vendor_client = vendor_client or ReloadlyClient(self.token_cache)
        self.verifier = verifier or FlutterwaveVerifier()
        self.pricing_engine = pricing_engine or get_pricing_engine()

        self.synchronizer = CatalogSynchronizer(self.catalog, self.vendor_client)
        self.orchestrator = SettlementOrchestrator(
            self.catalog,
            self.pricing_engine,
            self.verifier,
            self.vendor_client,
        )

        self.pricing_engine.price_catalog(self.catalog)

    def synchronize(self, full_resync: bool = False) -> Dict[str, Any]:
        result = self.synchronizer.synchronize(full_resync=full_resync)
        self.pricing_engine.price_catalog(self.catalog)
        return result

    def warm_up(self, sync: bool = False):
        """
        Fetch the primary token at boot and optionally fill catalog gaps
        before the app starts serving settlements.
        """
        missing = missing_credentials()
        if missing:
            logger.warning(f"One or more environment variables (API keys) are missing: {missing}")
            logger.warning("Create a '.env' file with the Flutterwave and Reloadly secret keys.")
            return

        try:
            self.token_cache.get_token(TOPUPS_AUDIENCE)
        except AuthenticationFailure as e:
            logger.error(f"Startup token fetch failed: {e}")
            return

        if sync:
            result = self.synchronize()
            logger.info(f"Startup sync matched {result['matchedCount']} products")

    def health(self) -> Dict[str, Any]:
        return {
            'catalogSize': len(self.catalog),
            'unconfiguredProducts': len(self.catalog.unconfigured()),
            'tokens': self.token_cache.snapshot(),
            'missingCredentials': missing_credentials(),
        }
