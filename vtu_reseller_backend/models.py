import threading
from datetime import datetime
from typing import Any, Dict, List, Optional

from config.product_catalog import default_catalog_entries


CATEGORIES = ('airtime', 'data', 'cableTV', 'electricity')

# Plans sold at one of a known set of prices; airtime and electricity take any amount
FIXED_DENOMINATION_CATEGORIES = ('data', 'cableTV')


class ProductValidator:
    """
    Validation utilities for catalog data.
    """

    @staticmethod
    def validate_category(category: str) -> bool:
        return category in CATEGORIES

    @staticmethod
    def validate_operator_id(operator_id) -> bool:
        """A vendor operator id is usable only as a positive integer."""
        if isinstance(operator_id, bool) or not isinstance(operator_id, int):
            return False
        return operator_id > 0

    @staticmethod
    def coerce_operator_id(value) -> Optional[int]:
        """Positive int from an int or digit string (manual updates arrive as JSON), else None."""
        if isinstance(value, bool):
            return None
        if isinstance(value, str) and value.strip().isdigit():
            value = int(value.strip())
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        if ProductValidator.validate_operator_id(value):
            return value
        return None

    @staticmethod
    def validate_price(price) -> bool:
        try:
            return price is not None and float(price) > 0
        except (ValueError, TypeError):
            return False


class Product:
    """
    A sellable unit in the catalog.

    product_key is the network code for airtime and the plan id for every
    other category. base_price is the vendor cost; resale_price is derived
    from it by the pricing engine and only exists for fixed-denomination plans.
    """

    def __init__(
        self,
        category: str,
        product_key: str,
        display_name: str,
        base_price: Optional[float] = None,
        operator_id: Optional[int] = None,
        network: Optional[str] = None,
        provider: Optional[str] = None,
        disco: Optional[str] = None,
        disco_name: Optional[str] = None,
        service_type: Optional[str] = None,
        validity: Optional[str] = None,
    ):
        if not ProductValidator.validate_category(category):
            raise ValueError(f'Unknown service category: {category}')
        if not product_key:
            raise ValueError('product_key is required')

        self.category = category
        self.product_key = product_key
        self.display_name = display_name
        self.base_price = base_price
        self.resale_price = None
        self.operator_id = operator_id
        self.network = network
        self.provider = provider
        self.disco = disco
        self.disco_name = disco_name
        self.service_type = service_type
        self.validity = validity
        self._priced_from = None

    @classmethod
    def from_entry(cls, entry: Dict[str, Any]) -> 'Product':
        """Build from a catalog entry dict (seed format / API format)."""
        category = entry.get('service')
        key = entry.get('network') if category == 'airtime' else entry.get('planId')
        return cls(
            category=category,
            product_key=key,
            display_name=entry.get('name', key),
            base_price=entry.get('basePrice', entry.get('price')),
            operator_id=entry.get('operatorId'),
            network=entry.get('network'),
            provider=entry.get('provider'),
            disco=entry.get('disco'),
            disco_name=entry.get('discoName'),
            service_type=entry.get('serviceType'),
            validity=entry.get('validity'),
        )

    @property
    def is_configured(self) -> bool:
        return ProductValidator.validate_operator_id(self.operator_id)

    @property
    def is_fixed_denomination(self) -> bool:
        return self.category in FIXED_DENOMINATION_CATEGORIES

    def identifying_labels(self) -> List[str]:
        """Labels tried, in order, against vendor operator/biller names."""
        if self.category in ('airtime', 'data'):
            labels = [self.network]
        elif self.category == 'cableTV':
            labels = [self.provider, self.display_name]
        else:
            labels = [self.disco, self.disco_name]
        return [label for label in labels if label]

    def update_base_price(self, base_price: Optional[float]):
        """Change vendor cost; a changed cost invalidates the stored resale price."""
        if base_price == self.base_price:
            return
        self.base_price = base_price
        self.resale_price = None
        self._priced_from = None

    def set_resale_price(self, resale_price: Optional[int]):
        self.resale_price = resale_price
        self._priced_from = self.base_price

    def needs_pricing(self) -> bool:
        if not self.is_fixed_denomination or self.base_price is None:
            return False
        return self.resale_price is None or self._priced_from != self.base_price

    def to_dict(self, include_costs: bool = False) -> Dict[str, Any]:
        doc = {
            'service': self.category,
            'name': self.display_name,
            'operatorId': self.operator_id,
            'configured': self.is_configured,
        }
        if self.category != 'airtime':
            doc['planId'] = self.product_key
        for key, value in (
            ('network', self.network),
            ('provider', self.provider),
            ('disco', self.disco),
            ('discoName', self.disco_name),
            ('serviceType', self.service_type),
            ('validity', self.validity),
        ):
            if value is not None:
                doc[key] = value
        if self.is_fixed_denomination:
            doc['price'] = self.resale_price
        if include_costs:
            doc['basePrice'] = self.base_price
            doc['resalePrice'] = self.resale_price
        return doc

    def __repr__(self):
        return f'<Product {self.category}:{self.product_key} operatorId={self.operator_id}>'


class Catalog:
    """
    Ordered products partitioned by category, unique by product_key per category.

    The catalog is owned by whoever builds the services; the synchronizer and
    pricing engine write to it, the orchestrator only reads.
    """

    def __init__(self, products: Optional[List[Product]] = None):
        self._products: Dict[str, Dict[str, Product]] = {category: {} for category in CATEGORIES}
        self._lock = threading.RLock()
        self.updated_at = None
        for product in products or []:
            self.add(product)

    @classmethod
    def from_entries(cls, entries: List[Dict[str, Any]]) -> 'Catalog':
        return cls([Product.from_entry(entry) for entry in entries])

    @classmethod
    def default(cls) -> 'Catalog':
        return cls.from_entries(default_catalog_entries())

    def add(self, product: Product):
        with self._lock:
            bucket = self._products[product.category]
            if product.product_key in bucket:
                raise ValueError(f'Duplicate product {product.category}:{product.product_key}')
            bucket[product.product_key] = product
            self.updated_at = datetime.utcnow()

    def get(self, category: str, product_key: Optional[str]) -> Optional[Product]:
        if not product_key:
            return None
        with self._lock:
            bucket = self._products.get(category)
            if bucket is None:
                return None
            product = bucket.get(product_key)
            if product is None and category == 'airtime':
                # Airtime is keyed by network code; tolerate case differences
                product = bucket.get(product_key.upper())
            return product

    def products(self, category: Optional[str] = None) -> List[Product]:
        with self._lock:
            if category is not None:
                return list(self._products.get(category, {}).values())
            return [p for bucket in self._products.values() for p in bucket.values()]

    def categories(self) -> List[str]:
        return list(CATEGORIES)

    def set_operator_id(self, category: str, product_key: str, operator_id: int) -> bool:
        """Write a resolved vendor id. Returns False for unknown products or unusable ids."""
        if not ProductValidator.validate_operator_id(operator_id):
            return False
        with self._lock:
            product = self.get(category, product_key)
            if product is None:
                return False
            product.operator_id = operator_id
            self.updated_at = datetime.utcnow()
            return True

    def unconfigured(self) -> List[Product]:
        return [p for p in self.products() if not p.is_configured]

    def to_dict(self, include_costs: bool = False) -> Dict[str, List[Dict[str, Any]]]:
        with self._lock:
            return {
                category: [p.to_dict(include_costs) for p in bucket.values()]
                for category, bucket in self._products.items()
            }

    def __len__(self):
        return len(self.products())


__all__ = [
    'CATEGORIES',
    'FIXED_DENOMINATION_CATEGORIES',
    'ProductValidator',
    'Product',
    'Catalog',
]
