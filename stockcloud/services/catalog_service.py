"""
Catalog Service - products, categories, suppliers and customers
"""

import logging
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional

from stockcloud.database import unit_of_work
from stockcloud.errors import (
    CategoryInUse, CategoryNotFound, ProductNotFound, SupplierNotFound, ValidationFailed
)
from stockcloud.models import Category, OrderStatus, Product, ProductAudit, RecordState, Supplier
from stockcloud.repositories import (
    CategoryRepository, CustomerRepository, OrderRepository, ProductAuditRepository, ProductRepository,
    SupplierRepository
)
from stockcloud.services.cache_policy import UseCase, invalidate_after
from stockcloud.utils.cache_utils import CacheKeys, get_cache
from stockcloud.utils.time_utils import utcnow

logger = logging.getLogger(__name__)

PRODUCT_FIELDS = ('name', 'stock', 'unit_price', 'category_id', 'supplier_id', 'minimum_quantity')

AUDIT_UPDATE = 'update'
AUDIT_ACTIVATE = 'activate'
AUDIT_DEACTIVATE = 'deactivate'


def _plain(value):
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    return value


def changed_fields(product: Product, updates: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    {field: {'before': old, 'after': new}} for the updates that differ from
    the product. Numbers compare by value, so 3.5 and Decimal('3.50') match.
    """
    changes = {}
    for field, new in updates.items():
        before, after = _plain(getattr(product, field)), _plain(new)
        numeric = isinstance(before, (int, float)) and isinstance(after, (int, float))
        same = float(before) == float(after) if numeric else before == after
        if not same:
            changes[field] = {'before': before, 'after': after}
    return changes


class ProductService:
    """Business logic for the product catalog"""

    def __init__(self, product_repo=None, category_repo=None, supplier_repo=None, order_repo=None,
                 audit_repo=None, cache=None):
        self.product_repo = product_repo or ProductRepository()
        self.category_repo = category_repo or CategoryRepository()
        self.supplier_repo = supplier_repo or SupplierRepository()
        self.order_repo = order_repo or OrderRepository()
        self.audit_repo = audit_repo or ProductAuditRepository()
        self.cache = cache or get_cache()

    def _get(self, product_id: int) -> Product:
        product = self.product_repo.get_by_id(product_id)
        if not product:
            raise ProductNotFound(product_id)
        return product

    def _check_refs(self, data: Dict[str, Any]) -> None:
        if data.get('category_id') is not None and not self.category_repo.get_by_id(data['category_id']):
            raise CategoryNotFound(data['category_id'])
        if data.get('supplier_id') is not None and not self.supplier_repo.get_by_id(data['supplier_id']):
            raise SupplierNotFound(data['supplier_id'])

    def list_products(self) -> List[Dict[str, Any]]:
        return self.cache.get_or_set(
            CacheKeys.PRODUCTS_ALL,
            lambda: [product.to_dict() for product in self.product_repo.list_all()],
        )

    def get_product(self, product_id: int) -> Dict[str, Any]:
        return self._get(product_id).to_dict()

    def create_product(self, **data) -> Dict[str, Any]:
        """Create an active product"""
        try:
            with unit_of_work(self.cache):
                self._check_refs(data)
                product = Product(
                    name=data['name'],
                    stock=data.get('stock', 0),
                    unit_price=data.get('unit_price', 0),
                    category_id=data.get('category_id'),
                    supplier_id=data.get('supplier_id'),
                    minimum_quantity=data.get('minimum_quantity', 0),
                    state=RecordState.ACTIVE,
                )
                self.product_repo.create(product)
                invalidate_after(UseCase.PRODUCT_CHANGED)

            logger.info(f"Created product {product.id}: {product.name}")
            return product.to_dict()

        except Exception as e:
            logger.error(f"Error creating product: {str(e)}")
            raise

    def update_product(self, product_id: int, actor_id: Optional[int] = None, **data) -> Dict[str, Any]:
        """Edit catalog fields; stock may be set explicitly here"""
        return self._change_product(product_id, data, actor_id, AUDIT_UPDATE)

    def set_product_state(self, product_id: int, state: RecordState,
                          actor_id: Optional[int] = None) -> Dict[str, Any]:
        action = AUDIT_ACTIVATE if state is RecordState.ACTIVE else AUDIT_DEACTIVATE
        return self._change_product(product_id, {'state': state.value}, actor_id, action)

    def _change_product(self, product_id: int, data: Dict[str, Any], actor_id: Optional[int],
                        action: str) -> Dict[str, Any]:
        """Apply the edit and record the changed fields in the same transaction"""
        try:
            with unit_of_work(self.cache):
                product = self._get(product_id)
                self._check_refs(data)

                updates = {field: data[field] for field in PRODUCT_FIELDS if field in data}
                if 'state' in data:
                    updates['state'] = RecordState(data['state'])
                changes = changed_fields(product, updates)

                for field, value in updates.items():
                    setattr(product, field, value)
                self.product_repo.update(product)

                if changes:
                    self.audit_repo.add(ProductAudit(
                        product_id=product.id,
                        user_id=actor_id,
                        action=action,
                        changed_fields=changes,
                        recorded_at=utcnow(),
                    ))
                invalidate_after(UseCase.PRODUCT_CHANGED)

            logger.info(f"Updated product {product_id} ({action}, {len(changes)} field(s) changed)")
            return product.to_dict()

        except Exception as e:
            logger.error(f"Error updating product {product_id}: {str(e)}")
            raise

    def audit_trail(self, product_id: Optional[int] = None, user_id: Optional[int] = None) -> List[Dict[str, Any]]:
        """Product edits, newest first"""
        if product_id is not None:
            self._get(product_id)
        return [entry.to_dict() for entry in self.audit_repo.list_all(product_id=product_id, user_id=user_id)]

    def critical_products(self) -> List[Dict[str, Any]]:
        """Active products under their minimum that no in-progress order covers"""
        def load():
            covered = set()
            for order in self.order_repo.list_by_status(OrderStatus.IN_PROGRESS):
                covered.update(int(line['product_id']) for line in order.lines or [])
            return [
                product.to_dict() for product in self.product_repo.list_below_minimum()
                if product.id not in covered
            ]

        return self.cache.get_or_set(CacheKeys.PRODUCTS_CRITICAL, load)

    def products_for_order(self) -> List[Dict[str, Any]]:
        """Flattened products with their supplier id, for building orders"""
        def load():
            return [
                {
                    'id': product.id,
                    'name': product.name,
                    'stock': product.stock,
                    'unit_price': float(product.unit_price),
                    'minimum_quantity': product.minimum_quantity,
                    'state': product.state.value,
                    'supplier_id': product.supplier_id,
                    'category': product.category.name if product.category else None,
                    'supplier': product.supplier.business_name if product.supplier else None,
                }
                for product in self.product_repo.list_all()
            ]

        return self.cache.get_or_set(CacheKeys.PRODUCTS_FOR_ORDER, load)

    def ranking(self, by: str = 'quantity', limit: int = 10) -> List[Dict[str, Any]]:
        if by not in ('quantity', 'revenue'):
            raise ValidationFailed("ranking must be by quantity or revenue")
        return self.product_repo.ranking(by=by, limit=limit)


class CategoryService:
    """Business logic for categories"""

    def __init__(self, category_repo=None, product_repo=None, cache=None):
        self.category_repo = category_repo or CategoryRepository()
        self.product_repo = product_repo or ProductRepository()
        self.cache = cache or get_cache()

    def _get(self, category_id: int) -> Category:
        category = self.category_repo.get_by_id(category_id)
        if not category:
            raise CategoryNotFound(category_id)
        return category

    def list_categories(self) -> List[Dict[str, Any]]:
        return self.cache.get_or_set(
            CacheKeys.CATEGORIES_ALL,
            lambda: [category.to_dict() for category in self.category_repo.list_all()],
        )

    def list_active(self) -> List[Dict[str, Any]]:
        return [category.to_dict() for category in self.category_repo.list_active()]

    def create_category(self, name: str) -> Dict[str, Any]:
        with unit_of_work(self.cache):
            category = self.category_repo.add(Category(name=name.strip(), state=RecordState.ACTIVE))
            invalidate_after(UseCase.CATEGORY_CHANGED)

        logger.info(f"Created category {category.id}: {category.name}")
        return category.to_dict()

    def rename_category(self, category_id: int, name: str) -> Dict[str, Any]:
        with unit_of_work(self.cache):
            category = self._get(category_id)
            category.name = name.strip()
            self.category_repo.flush(category)
            invalidate_after(UseCase.CATEGORY_CHANGED)

        logger.info(f"Renamed category {category_id} to {category.name}")
        return category.to_dict()

    def change_state(self, category_id: int, state: RecordState) -> Dict[str, Any]:
        """
        Activate or deactivate a category.

        Deactivation is refused while any active product of the category has
        stock; otherwise every product in it is deactivated as well.
        """
        try:
            with unit_of_work(self.cache):
                category = self._get(category_id)

                if state is RecordState.INACTIVE:
                    in_stock = self.product_repo.count_active_in_stock(category_id)
                    if in_stock:
                        raise CategoryInUse(category_id, in_stock)
                    deactivated = self.product_repo.deactivate_by_category(category_id)
                    logger.info(f"Deactivated {deactivated} product(s) of category {category_id}")
                    invalidate_after(UseCase.PRODUCT_CHANGED)

                category.state = state
                self.category_repo.flush(category)
                invalidate_after(UseCase.CATEGORY_CHANGED)

            return category.to_dict()

        except Exception as e:
            logger.error(f"Error changing state of category {category_id}: {str(e)}")
            raise


class SupplierService:
    """Business logic for suppliers"""

    def __init__(self, supplier_repo=None, cache=None):
        self.supplier_repo = supplier_repo or SupplierRepository()
        self.cache = cache or get_cache()

    def _get(self, supplier_id: int) -> Supplier:
        supplier = self.supplier_repo.get_by_id(supplier_id)
        if not supplier:
            raise SupplierNotFound(supplier_id)
        return supplier

    def list_suppliers(self) -> List[Dict[str, Any]]:
        return self.cache.get_or_set(
            CacheKeys.SUPPLIERS_ALL,
            lambda: [supplier.to_dict() for supplier in self.supplier_repo.list_all()],
        )

    def get_supplier(self, supplier_id: int) -> Dict[str, Any]:
        return self._get(supplier_id).to_dict()

    def create_supplier(self, **data) -> Dict[str, Any]:
        with unit_of_work(self.cache):
            supplier = self.supplier_repo.add(Supplier(**data))
            invalidate_after(UseCase.SUPPLIER_CHANGED)

        logger.info(f"Created supplier {supplier.id}: {supplier.business_name}")
        return supplier.to_dict()

    def update_supplier(self, supplier_id: int, **data) -> Dict[str, Any]:
        with unit_of_work(self.cache):
            supplier = self._get(supplier_id)
            for field, value in data.items():
                setattr(supplier, field, value)
            self.supplier_repo.flush(supplier)
            invalidate_after(UseCase.SUPPLIER_CHANGED)

        logger.info(f"Updated supplier {supplier_id}")
        return supplier.to_dict()


class CustomerService:
    """Read side of customers; sales register and update them"""

    def __init__(self, customer_repo=None, cache=None):
        self.customer_repo = customer_repo or CustomerRepository()
        self.cache = cache or get_cache()

    def list_customers(self) -> List[Dict[str, Any]]:
        return self.cache.get_or_set(
            CacheKeys.CUSTOMERS_ALL,
            lambda: [customer.to_dict() for customer in self.customer_repo.list_all()],
        )

    def find(self, national_id: Optional[str] = None, tax_id: Optional[str] = None) -> Optional[Dict[str, Any]]:
        """Look a customer up by DNI or RUC"""
        if national_id:
            customer = self.customer_repo.find_by_national_id(national_id)
        elif tax_id:
            customer = self.customer_repo.find_by_tax_id(tax_id)
        else:
            raise ValidationFailed("national_id or tax_id is required")
        return customer.to_dict() if customer else None
