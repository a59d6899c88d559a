"""
Stock Ledger - per-product on-hand quantity
"""

import logging

from stockcloud.errors import ProductNotFound
from stockcloud.repositories import ProductRepository
from stockcloud.services.cache_policy import UseCase, invalidate_after

logger = logging.getLogger(__name__)


class StockLedger:
    """
    Increments and decrements product stock.

    Both operations run inside the caller's unit of work; nothing is
    committed here.
    """

    def __init__(self, product_repo=None):
        self.product_repo = product_repo or ProductRepository()

    def increase(self, product_id: int, quantity: int) -> None:
        """Purchases and overages"""
        self._apply(product_id, quantity)

    def decrease(self, product_id: int, quantity: int) -> None:
        """Sales and shortages. There is no floor: stock may go negative."""
        self._apply(product_id, -quantity)

        remaining = self.product_repo.current_stock(product_id)
        if remaining is not None and remaining < 0:
            logger.warning(f"Stock for product {product_id} went negative: {remaining}")

    def _apply(self, product_id: int, delta: int) -> None:
        if not self.product_repo.add_to_stock(product_id, delta):
            raise ProductNotFound(product_id)

        invalidate_after(UseCase.STOCK_CHANGED)
        logger.debug(f"Stock of product {product_id} changed by {delta}")
