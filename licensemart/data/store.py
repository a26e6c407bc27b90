"""
In-memory entity store for the LicenseMart catalog, users, orders and licenses.

Every collection is a dict keyed by an auto-incrementing integer id. Queries are
linear scans returned in id order. The store is volatile: it lives as long as
the process and is rebuilt from seed data on start (see licensemart.data.seed).

Records handed out are copies, so callers cannot change stored state without
going through update_*.
"""
from __future__ import annotations

import itertools
import threading
from dataclasses import replace
from datetime import datetime
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, TypeVar

from licensemart.core.errors import InvalidReferenceError, NotFoundError, ValidationError
from licensemart.data.entities import (
    LICENSE_TYPE_UPDATABLE_FIELDS,
    PRODUCT_UPDATABLE_FIELDS,
    License,
    LicenseType,
    Order,
    OrderItem,
    Product,
    User,
    utcnow,
)
from licensemart.utils.logger import get_logger

logger = get_logger("data.store")

T = TypeVar("T")

ENTITY_KINDS = ("user", "product", "license_type", "license", "order", "order_item")


def _check_price(value: Any, field_name: str = "price") -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValidationError(f"{field_name} must be a number", {"field": field_name})
    if value < 0:
        raise ValidationError(f"{field_name} must not be negative", {"field": field_name})
    return float(value)


def _check_max_users(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValidationError("max_users must be a positive integer or null", {"field": "max_users"})
    return value


class EntityStore:
    """
    Authoritative holder of all entities for one process.

    One re-entrant lock guards every mutation and scan. Callers that need several
    operations to appear as one step (the checkout workflow) hold `store.lock`
    around them.
    """

    def __init__(self) -> None:
        self.lock = threading.RLock()
        self._tables: Dict[str, Dict[int, Any]] = {kind: {} for kind in ENTITY_KINDS}
        self._counters: Dict[str, Iterator[int]] = {kind: itertools.count(1) for kind in ENTITY_KINDS}
        # Admin-managed category names; dict keys keep insertion order.
        self._categories: Dict[str, None] = {}

    # ------------------------------------------------------------------
    # Generic helpers
    # ------------------------------------------------------------------

    def _insert(self, kind: str, build: Callable[[int], T]) -> T:
        with self.lock:
            record_id = next(self._counters[kind])
            record = build(record_id)
            self._tables[kind][record_id] = record
            return replace(record)

    def _get(self, kind: str, record_id: int) -> Optional[Any]:
        with self.lock:
            record = self._tables[kind].get(record_id)
            return replace(record) if record is not None else None

    def _scan(self, kind: str, predicate: Callable[[Any], bool] = None) -> List[Any]:
        with self.lock:
            return [
                replace(record)
                for _, record in sorted(self._tables[kind].items())
                if predicate is None or predicate(record)
            ]

    def _update(self, kind: str, record_id: int, fields: Mapping[str, Any], allowed: frozenset) -> Any:
        unknown = sorted(set(fields) - allowed)
        if unknown:
            raise ValidationError(
                f"Unknown or read-only fields for {kind}: {', '.join(unknown)}",
                {"fields": unknown},
            )
        with self.lock:
            existing = self._tables[kind].get(record_id)
            if existing is None:
                raise NotFoundError(f"{kind.replace('_', ' ').capitalize()} not found", {"id": record_id})
            updated = replace(existing, **fields)
            self._tables[kind][record_id] = updated
            return replace(updated)

    def _delete(self, kind: str, record_id: int) -> bool:
        with self.lock:
            return self._tables[kind].pop(record_id, None) is not None

    def discard(self, kind: str, record_id: int) -> bool:
        """Remove a record of any kind. Used only to roll back a staged checkout."""
        if kind not in self._tables:
            raise ValueError(f"Unknown entity kind: {kind}")
        return self._delete(kind, record_id)

    def count(self, kind: str) -> int:
        with self.lock:
            return len(self._tables[kind])

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def create_user(
        self,
        username: str,
        email: str,
        password_hash: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        company: Optional[str] = None,
        is_admin: bool = False,
    ) -> User:
        """Create a user. Username/email uniqueness is the caller's job."""
        return self._insert("user", lambda record_id: User(
            id=record_id,
            username=username,
            email=email,
            password_hash=password_hash,
            first_name=first_name or None,
            last_name=last_name or None,
            company=company or None,
            is_admin=bool(is_admin),
        ))

    def get_user(self, user_id: int) -> Optional[User]:
        return self._get("user", user_id)

    def get_user_by_username(self, username: str) -> Optional[User]:
        wanted = username.lower()
        matches = self._scan("user", lambda u: u.username.lower() == wanted)
        return matches[0] if matches else None

    def get_user_by_email(self, email: str) -> Optional[User]:
        wanted = email.lower()
        matches = self._scan("user", lambda u: u.email.lower() == wanted)
        return matches[0] if matches else None

    def list_users(self) -> List[User]:
        return self._scan("user")

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def create_product(
        self,
        name: str,
        description: str,
        short_description: str,
        price: float,
        image_url: str,
        category: str,
        is_popular: bool = False,
        is_best_seller: bool = False,
        is_new: bool = False,
    ) -> Product:
        price = _check_price(price)
        return self._insert("product", lambda record_id: Product(
            id=record_id,
            name=name,
            description=description,
            short_description=short_description,
            price=price,
            image_url=image_url,
            category=category,
            is_popular=bool(is_popular),
            is_best_seller=bool(is_best_seller),
            is_new=bool(is_new),
        ))

    def get_product(self, product_id: int) -> Optional[Product]:
        return self._get("product", product_id)

    def list_products(self) -> List[Product]:
        return self._scan("product")

    def list_products_by_category(self, category: str) -> List[Product]:
        """Exact, case-sensitive match on the product's category label."""
        return self._scan("product", lambda p: p.category == category)

    def list_featured_products(self) -> List[Product]:
        """Products with at least one of the popular / best-seller / new flags."""
        return self._scan("product", lambda p: p.is_featured)

    def update_product(self, product_id: int, fields: Mapping[str, Any]) -> Product:
        fields = dict(fields)
        if "price" in fields:
            fields["price"] = _check_price(fields["price"])
        return self._update("product", product_id, fields, PRODUCT_UPDATABLE_FIELDS)

    def delete_product(self, product_id: int) -> bool:
        """Plain removal; license types, licenses and order items keep their product_id."""
        return self._delete("product", product_id)

    # ------------------------------------------------------------------
    # License types
    # ------------------------------------------------------------------

    def create_license_type(
        self,
        product_id: int,
        name: str,
        description: str,
        price: float,
        max_users: Optional[int] = 1,
    ) -> LicenseType:
        price = _check_price(price)
        max_users = _check_max_users(max_users)
        with self.lock:
            if product_id not in self._tables["product"]:
                raise InvalidReferenceError("Product not found", {"product_id": product_id})
            return self._insert("license_type", lambda record_id: LicenseType(
                id=record_id,
                product_id=product_id,
                name=name,
                description=description,
                price=price,
                max_users=max_users,
            ))

    def get_license_type(self, license_type_id: int) -> Optional[LicenseType]:
        return self._get("license_type", license_type_id)

    def list_license_types(self, product_id: int) -> List[LicenseType]:
        return self._scan("license_type", lambda lt: lt.product_id == product_id)

    def update_license_type(self, license_type_id: int, fields: Mapping[str, Any]) -> LicenseType:
        fields = dict(fields)
        if "price" in fields:
            fields["price"] = _check_price(fields["price"])
        if "max_users" in fields:
            fields["max_users"] = _check_max_users(fields["max_users"])
        with self.lock:
            if "product_id" in fields and fields["product_id"] not in self._tables["product"]:
                raise InvalidReferenceError("Product not found", {"product_id": fields["product_id"]})
            return self._update("license_type", license_type_id, fields, LICENSE_TYPE_UPDATABLE_FIELDS)

    def delete_license_type(self, license_type_id: int) -> bool:
        return self._delete("license_type", license_type_id)

    # ------------------------------------------------------------------
    # Licenses
    # ------------------------------------------------------------------

    def create_license(
        self,
        user_id: int,
        product_id: int,
        license_type_id: int,
        license_key: str,
        is_active: bool = True,
        expires_at: Optional[datetime] = None,
        created_at: Optional[datetime] = None,
    ) -> License:
        return self._insert("license", lambda record_id: License(
            id=record_id,
            user_id=user_id,
            product_id=product_id,
            license_type_id=license_type_id,
            license_key=license_key,
            is_active=is_active,
            expires_at=expires_at,
            created_at=created_at or utcnow(),
        ))

    def get_license(self, license_id: int) -> Optional[License]:
        return self._get("license", license_id)

    def get_license_by_key(self, license_key: str) -> Optional[License]:
        matches = self._scan("license", lambda lic: lic.license_key == license_key)
        return matches[0] if matches else None

    def list_licenses(self, user_id: int) -> List[License]:
        return self._scan("license", lambda lic: lic.user_id == user_id)

    def list_licenses_by_status(self, user_id: int, is_active: bool) -> List[License]:
        return self._scan("license", lambda lic: lic.user_id == user_id and lic.is_active == is_active)

    # ------------------------------------------------------------------
    # Orders and order items
    # ------------------------------------------------------------------

    def create_order(
        self,
        user_id: int,
        total: float,
        status: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> Order:
        return self._insert("order", lambda record_id: Order(
            id=record_id,
            user_id=user_id,
            total=float(total),
            status=status or "pending",
            created_at=created_at or utcnow(),
        ))

    def get_order(self, order_id: int) -> Optional[Order]:
        return self._get("order", order_id)

    def list_orders(self, user_id: int) -> List[Order]:
        return self._scan("order", lambda o: o.user_id == user_id)

    def list_all_orders(self) -> List[Order]:
        return self._scan("order")

    def create_order_item(
        self,
        order_id: int,
        product_id: int,
        license_type_id: int,
        price: float,
        quantity: Optional[int] = None,
    ) -> OrderItem:
        quantity = 1 if quantity is None else quantity
        if quantity < 1:
            raise ValidationError("quantity must be at least 1", {"field": "quantity"})
        return self._insert("order_item", lambda record_id: OrderItem(
            id=record_id,
            order_id=order_id,
            product_id=product_id,
            license_type_id=license_type_id,
            price=float(price),
            quantity=quantity,
        ))

    def list_order_items(self, order_id: int) -> List[OrderItem]:
        return self._scan("order_item", lambda item: item.order_id == order_id)

    # ------------------------------------------------------------------
    # Categories
    #
    # Two notions exist and are not kept in sync: the admin-managed name set
    # below, and the labels actually carried by products.
    # ------------------------------------------------------------------

    def list_categories(self) -> List[str]:
        with self.lock:
            return list(self._categories)

    def create_category(self, name: str) -> str:
        with self.lock:
            self._categories[name] = None
        return name

    def delete_category(self, name: str) -> bool:
        with self.lock:
            if name not in self._categories:
                return False
            del self._categories[name]
            return True

    def list_product_categories(self) -> List[str]:
        """Distinct category labels of current products, in first-seen order."""
        seen: Dict[str, None] = {}
        for product in self._scan("product"):
            if product.category:
                seen.setdefault(product.category, None)
        return list(seen)
