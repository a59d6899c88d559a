import json
import logging
from typing import Any, Callable, Optional

from flask import current_app

logger = logging.getLogger(__name__)

DEFAULT_TTL = 3600  # 1 hour

# app.extensions key of the CacheStore built by the app factory
CACHE_EXTENSION = 'stockcloud.cache'


class CacheKeys:
    """Cache keys shared by the read paths and the invalidation policy"""
    PRODUCTS_ALL = 'productos:all'
    PRODUCTS_CRITICAL = 'productos:criticos'
    PRODUCTS_FOR_ORDER = 'productos:paraOrden'
    MOVEMENTS_ALL = 'movimientos:all'
    SHORTAGES_30D = 'movimientos:mermas30d'
    OVERAGES_30D = 'movimientos:sobrantes30d'
    SALES_30D = 'movimientos:ventas30d'
    CUSTOMERS_ALL = 'clientes:all'
    ORDERS_ALL = 'ordenes:all'
    ORDERS_30D = 'ordenes:ultimos30dias'
    INCIDENTS_ALL = 'incidencias:all'
    INCIDENTS_30D = 'incidencias:ultimos30dias'
    SUPPLIERS_ALL = 'proveedores:all'
    CATEGORIES_ALL = 'categorias:all'
    USERS_ALL = 'usuarios:all'

    @staticmethod
    def movement_detail(movement_id):
        return f"movimientos:detalle:{movement_id}"

    @staticmethod
    def adjustments_on(kind, day):
        prefix = 'mermas' if kind == 'shortage' else 'sobrantes'
        return f"movimientos:{prefix}:{day}"

    @staticmethod
    def orders_on(day):
        return f"ordenes:fecha:{day}"

    @staticmethod
    def incidents_on(day):
        return f"incidencias:fecha:{day}"


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, (list, dict)) and len(value) == 0)


class CacheStore:
    """
    Thin get/set/delete wrapper around a Redis client.

    A store built without a client is a pass-through: reads miss and
    writes are dropped, so the service keeps working when Redis is down.
    """

    def __init__(self, redis_client=None, default_ttl: int = DEFAULT_TTL):
        self.client = redis_client
        self.default_ttl = default_ttl

    @property
    def enabled(self) -> bool:
        return self.client is not None

    def get(self, key: str) -> Optional[Any]:
        """Get data from cache"""
        if not self.client:
            return None

        try:
            cached_data = self.client.get(key)
            if cached_data:
                return json.loads(cached_data)
        except Exception as e:
            logger.warning(f"Error reading from cache key {key}: {e}")

        return None

    def set(self, key: str, data: Any, ttl: Optional[int] = None) -> bool:
        """Set data in cache with TTL"""
        if not self.client:
            return False

        try:
            self.client.setex(key, ttl or self.default_ttl, json.dumps(data, default=str))
            return True
        except Exception as e:
            logger.warning(f"Error setting cache key {key}: {e}")
            return False

    def delete(self, *keys: str) -> int:
        """Delete keys, returns how many existed"""
        if not self.client or not keys:
            return 0

        try:
            return self.client.delete(*keys)
        except Exception as e:
            logger.warning(f"Error deleting cache keys {keys}: {e}")
            return 0

    def get_or_set(self, key: str, loader: Callable[[], Any], ttl: Optional[int] = None) -> Any:
        """
        Read-through: return the cached value or compute, store and return it.
        Empty results are returned but never stored.
        """
        cached = self.get(key)
        if cached is not None:
            logger.debug(f"Cache hit for {key}")
            return cached

        fresh = loader()
        if not _is_empty(fresh):
            self.set(key, fresh, ttl)
        return fresh

    def ping(self) -> bool:
        if not self.client:
            return False
        try:
            return bool(self.client.ping())
        except Exception as e:
            logger.warning(f"Cache ping failed: {e}")
            return False


def get_cache() -> CacheStore:
    """Cache store of the current app; a pass-through store outside an app context."""
    try:
        return current_app.extensions[CACHE_EXTENSION]
    except (RuntimeError, KeyError):
        return CacheStore()
