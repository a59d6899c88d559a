"""
Cache invalidation policy.

Fixed table from mutating use case to the cache keys it makes stale. Keys
are queued on the current unit of work and deleted only once it commits.
"""

import logging
from enum import Enum

from stockcloud.database import schedule_eviction
from stockcloud.utils.cache_utils import CacheKeys

logger = logging.getLogger(__name__)


class UseCase(Enum):
    SALE = "sale"
    PURCHASE = "purchase"
    SHORTAGE = "shortage"
    OVERAGE = "overage"
    ORDER_CHANGED = "order_changed"
    PRODUCT_CHANGED = "product_changed"
    STOCK_CHANGED = "stock_changed"
    SUPPLIER_CHANGED = "supplier_changed"
    CATEGORY_CHANGED = "category_changed"
    USER_CHANGED = "user_changed"


INVALIDATION_POLICY = {
    UseCase.SALE: (
        CacheKeys.PRODUCTS_ALL,
        CacheKeys.MOVEMENTS_ALL,
        CacheKeys.CUSTOMERS_ALL,
        CacheKeys.PRODUCTS_CRITICAL,
        CacheKeys.PRODUCTS_FOR_ORDER,
    ),
    UseCase.PURCHASE: (
        CacheKeys.MOVEMENTS_ALL,
        CacheKeys.ORDERS_ALL,
        CacheKeys.PRODUCTS_ALL,
        CacheKeys.INCIDENTS_ALL,
        CacheKeys.PRODUCTS_CRITICAL,
        CacheKeys.PRODUCTS_FOR_ORDER,
    ),
    UseCase.SHORTAGE: (
        CacheKeys.MOVEMENTS_ALL,
        CacheKeys.SHORTAGES_30D,
        CacheKeys.PRODUCTS_ALL,
    ),
    UseCase.OVERAGE: (
        CacheKeys.MOVEMENTS_ALL,
        CacheKeys.OVERAGES_30D,
        CacheKeys.PRODUCTS_ALL,
    ),
    UseCase.ORDER_CHANGED: (
        CacheKeys.ORDERS_ALL,
        CacheKeys.ORDERS_30D,
    ),
    UseCase.PRODUCT_CHANGED: (
        CacheKeys.PRODUCTS_ALL,
        CacheKeys.PRODUCTS_CRITICAL,
        CacheKeys.PRODUCTS_FOR_ORDER,
    ),
    UseCase.STOCK_CHANGED: (
        CacheKeys.PRODUCTS_ALL,
        CacheKeys.PRODUCTS_CRITICAL,
    ),
    UseCase.SUPPLIER_CHANGED: (
        CacheKeys.SUPPLIERS_ALL,
        CacheKeys.PRODUCTS_FOR_ORDER,
    ),
    UseCase.CATEGORY_CHANGED: (
        CacheKeys.CATEGORIES_ALL,
        CacheKeys.PRODUCTS_ALL,
    ),
    UseCase.USER_CHANGED: (
        CacheKeys.USERS_ALL,
    ),
}


def keys_for(use_case):
    return INVALIDATION_POLICY[use_case]


def invalidate_after(use_case, *extra_keys, session=None):
    """Queue the keys of `use_case` (plus any extra keys) for post-commit eviction."""
    keys = set(INVALIDATION_POLICY[use_case]) | set(extra_keys)
    schedule_eviction(keys, session=session)
    logger.debug(f"Queued cache eviction for {use_case.value}: {sorted(keys)}")
    return keys
