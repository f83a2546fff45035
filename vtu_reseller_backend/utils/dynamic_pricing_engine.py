"""
Markup Pricing Engine for VAS Resale
Keeps vendor cost and customer price apart for every product category

Key Features:
- Independent markup fraction per service category
- Fixed-denomination plans (data, cable TV): resale price computed once from the
  stored vendor cost and kept alongside it
- Variable-amount services (airtime, electricity): customer amount converted back
  to vendor cost at settlement time
- Round half away from zero, applied once per direction

Rounding is lossy by nature: remove_markup(apply_markup(x)) can differ from x by
a naira or so. Settlement never derives a fixed plan's cost from its resale
price, so the drift only ever affects variable-amount services.
"""

import logging
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional

from config.environment import CATEGORY_MARKUPS
from models import CATEGORIES, FIXED_DENOMINATION_CATEGORIES
from utils.vas_errors import ProductNotConfigured

logger = logging.getLogger(__name__)


def round_half_away_from_zero(value) -> int:
    """Round to whole naira; .5 goes away from zero (Decimal ROUND_HALF_UP)."""
    return int(Decimal(str(value)).quantize(Decimal('1'), rounding=ROUND_HALF_UP))


class MarkupPricingEngine:
    def __init__(self, markups: Optional[Dict[str, float]] = None):
        self.CATEGORY_MARKUPS = dict(CATEGORY_MARKUPS)
        if markups:
            self.CATEGORY_MARKUPS.update(markups)

        for category, markup in self.CATEGORY_MARKUPS.items():
            if category not in CATEGORIES:
                raise ValueError(f"Unsupported service type: {category}")
            if markup is None or markup < 0:
                raise ValueError(f"Markup for {category} must be >= 0, got {markup}")

    def markup_for(self, category: str) -> Decimal:
        if category not in self.CATEGORY_MARKUPS:
            raise ValueError(f"Unsupported service type: {category}")
        return Decimal(str(self.CATEGORY_MARKUPS[category]))

    def is_fixed_denomination(self, category: str) -> bool:
        return category in FIXED_DENOMINATION_CATEGORIES

    def apply_markup(self, base_price, category: str) -> int:
        """Vendor cost -> customer price: round(base * (1 + m))"""
        multiplier = Decimal('1') + self.markup_for(category)
        return round_half_away_from_zero(Decimal(str(base_price)) * multiplier)

    def remove_markup(self, resale_price, category: str) -> int:
        """Customer price -> vendor cost: round(resale / (1 + m))"""
        multiplier = Decimal('1') + self.markup_for(category)
        return round_half_away_from_zero(Decimal(str(resale_price)) / multiplier)

    def price_product(self, product) -> bool:
        """
        Store the resale price on a fixed-denomination product.
        Only recomputes when the product has no resale price yet or its base price changed.
        Returns True if the product was (re)priced.
        """
        if not product.needs_pricing():
            return False
        product.set_resale_price(self.apply_markup(product.base_price, product.category))
        return True

    def price_catalog(self, catalog) -> int:
        """Price every fixed-denomination product that needs it. Returns how many were priced."""
        priced = 0
        for product in catalog.products():
            if self.price_product(product):
                priced += 1
        if priced:
            logger.info(f"Priced {priced} catalog products")
        return priced

    def vendor_amount(self, product, customer_amount) -> int:
        """
        Amount to send the vendor for a settlement.
        Fixed plans use the stored vendor cost and ignore what the customer paid.
        """
        if self.is_fixed_denomination(product.category):
            if product.base_price is None:
                raise ProductNotConfigured(
                    f"This product ({product.category}:{product.product_key}) is not configured.",
                    detail="Fixed plan has no base price",
                )
            return round_half_away_from_zero(product.base_price)
        return self.remove_markup(customer_amount, product.category)

    def calculate_margin(self, customer_amount, vendor_amount) -> Dict:
        """
        Realized margin for operational reporting.

        Returns:
        {
            'selling_price': float,
            'cost_price': float,
            'margin': float,
            'margin_percentage': float
        }
        """
        selling_price = float(customer_amount)
        cost_price = float(vendor_amount)
        margin = selling_price - cost_price
        margin_percentage = (margin / cost_price) * 100 if cost_price > 0 else 0.0
        return {
            'selling_price': round(selling_price, 2),
            'cost_price': round(cost_price, 2),
            'margin': round(margin, 2),
            'margin_percentage': round(margin_percentage, 2),
        }


_engine = None


def get_pricing_engine(markups: Optional[Dict[str, float]] = None) -> MarkupPricingEngine:
    """Factory for the shared engine; passing markups builds a fresh one."""
    global _engine
    if markups is not None:
        return MarkupPricingEngine(markups)
    if _engine is None:
        _engine = MarkupPricingEngine()
    return _engine
