"""
Catalog Synchronizer
Resolves vendor operator/biller ids for catalog products by fuzzy-matching
product labels against Reloadly's listings.

- Listings for independent categories are fetched concurrently
- Matches are applied sequentially per category, first qualifying vendor
  record wins (vendor listing order)
- Fill-gaps mode only touches unconfigured products; full resync revisits all
- A failed listing only skips its own categories
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from config.environment import VAS_COUNTRY_CODE, VENDOR_HTTP_TIMEOUT
from models import ProductValidator
from utils.name_matcher import matches_any
from utils.parallel_query_helper import fetch_collections_parallel, fetch_with_timing
from utils.reloadly_utils import CABLE_TV_BILLER_TYPE, ELECTRICITY_BILLER_TYPE

logger = logging.getLogger(__name__)

# Listing name -> catalog categories served by it
LISTING_CATEGORIES = {
    'operators': ('airtime', 'data'),
    'cableTV': ('cableTV',),
    'electricity': ('electricity',),
}


class CatalogSynchronizer:
    def __init__(self, catalog, vendor_client, country_code: str = VAS_COUNTRY_CODE,
                 fetch_timeout: Optional[float] = None):
        self.catalog = catalog
        self.vendor_client = vendor_client
        self.country_code = country_code
        # Each listing call has its own HTTP timeout; leave room for token refresh on top
        self.fetch_timeout = fetch_timeout or VENDOR_HTTP_TIMEOUT * 3
        self.last_result = None

    def _fetchers(self):
        client = self.vendor_client
        country = self.country_code
        return {
            'operators': lambda: fetch_with_timing(
                lambda: client.list_operators(country), 'Reloadly operators'),
            'cableTV': lambda: fetch_with_timing(
                lambda: client.list_billers(CABLE_TV_BILLER_TYPE, country), 'Reloadly cable TV billers'),
            'electricity': lambda: fetch_with_timing(
                lambda: client.list_billers(ELECTRICITY_BILLER_TYPE, country), 'Reloadly electricity billers'),
        }

    @staticmethod
    def record_qualifies(product, record) -> bool:
        """Name match plus the category's extra requirement on the vendor record."""
        if not matches_any(record.name, product.identifying_labels()):
            return False

        if product.category == 'airtime':
            return record.has_pricing_mode
        if product.category == 'data':
            return record.has_pricing_mode or record.supports_data
        if product.category == 'electricity' and record.service_type and product.service_type:
            return record.service_type.strip().lower() == product.service_type.strip().lower()
        return True

    def synchronize(self, full_resync: bool = False) -> Dict[str, Any]:
        """
        Match catalog products to vendor ids.

        Returns:
        {
            'matchedCount': int,
            'matchedIds': {category: {productKey: {'operatorId', 'name', 'productName'}}},
            'unmatchedProductKeys': {category: [productKey, ...]},
            'errors': {category: message},
            'available': {category: [vendor record dicts]},
            'fullResync': bool,
        }
        """
        mode = 'full resync' if full_resync else 'fill gaps'
        logger.info(f"Starting operator ID sync from Reloadly ({mode})...")

        listings, fetch_errors = fetch_collections_parallel(
            self._fetchers(), max_workers=len(LISTING_CATEGORIES), timeout=self.fetch_timeout)

        records_by_category: Dict[str, List] = {}
        errors: Dict[str, str] = {}
        for listing_name, categories in LISTING_CATEGORIES.items():
            for category in categories:
                if listing_name in fetch_errors:
                    errors[category] = str(fetch_errors[listing_name])
                else:
                    records_by_category[category] = listings.get(listing_name) or []

        matched_ids = {category: {} for category in self.catalog.categories()}
        unmatched = {category: [] for category in self.catalog.categories()}
        matched_count = 0

        for category in self.catalog.categories():
            if category in errors:
                logger.error(f"✗ Skipping {category}: {errors[category]}")
                continue

            records = records_by_category.get(category, [])
            for product in self.catalog.products(category):
                if product.is_configured and not full_resync:
                    continue

                match = next((r for r in records if self.record_qualifies(product, r)), None)
                vendor_id = ProductValidator.coerce_operator_id(match.vendor_id) if match else None

                if vendor_id is None:
                    # Full resync keeps a previously resolved id when nothing matches now
                    unmatched[category].append(product.product_key)
                    logger.info(f"✗ Could not match {category} {product.product_key}")
                    continue

                self.catalog.set_operator_id(category, product.product_key, vendor_id)
                matched_ids[category][product.product_key] = {
                    'operatorId': vendor_id,
                    'name': match.name,
                    'productName': product.display_name,
                }
                matched_count += 1
                logger.info(f"✓ Matched {category} {product.product_key}: {vendor_id} ({match.name})")

        result = {
            'matchedCount': matched_count,
            'matchedIds': matched_ids,
            'unmatchedProductKeys': unmatched,
            'errors': errors,
            'available': {
                category: [r.to_dict() for r in records]
                for category, records in records_by_category.items()
            },
            'fullResync': full_resync,
        }
        self.last_result = result

        total_unmatched = sum(len(keys) for keys in unmatched.values())
        logger.info(f"Operator ID sync finished: {matched_count} matched, "
                    f"{total_unmatched} unmatched, {len(errors)} category error(s)")
        return result

    def apply_operator_ids(self, matched_ids: Dict[str, Dict[str, Any]]) -> Dict[str, Any]:
        """
        Write operator ids supplied by an operator (typically an edited
        `matchedIds` from synchronize). Values may be an id or {'operatorId': id}.
        Unknown products and unusable ids are reported, never written.
        """
        updated_count = 0
        rejected = []

        for category, entries in (matched_ids or {}).items():
            if category not in self.catalog.categories() or not isinstance(entries, dict):
                rejected.append({'category': category, 'reason': 'unknown category'})
                continue

            for product_key, entry in entries.items():
                raw_id = entry.get('operatorId') if isinstance(entry, dict) else entry
                operator_id = ProductValidator.coerce_operator_id(raw_id)

                if self.catalog.get(category, product_key) is None:
                    rejected.append({'category': category, 'productKey': product_key,
                                     'reason': 'unknown product'})
                    continue
                if operator_id is None:
                    rejected.append({'category': category, 'productKey': product_key,
                                     'reason': f'invalid operatorId: {raw_id!r}'})
                    continue

                self.catalog.set_operator_id(category, product_key, operator_id)
                updated_count += 1
                logger.info(f"Updated {category} {product_key}: {operator_id}")

        return {'updatedCount': updated_count, 'rejected': rejected}

    def export_operator_ids(self) -> Dict[str, Any]:
        """Snapshot of resolved ids, shaped like the manual-update payload."""
        snapshot = {'lastUpdated': datetime.utcnow().isoformat() + 'Z'}
        for category in self.catalog.categories():
            entries = {}
            for product in self.catalog.products(category):
                entry = {'operatorId': product.operator_id, 'name': product.display_name}
                for key, value in (('network', product.network),
                                   ('provider', product.provider),
                                   ('disco', product.disco)):
                    if value and category != 'airtime':
                        entry[key] = value
                entries[product.product_key] = entry
            snapshot[category] = entries
        return snapshot
