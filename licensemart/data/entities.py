"""
Entity records held by the in-memory store.

Plain dataclasses; the API layer converts them to pydantic response models.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class User:
    id: int
    username: str
    email: str
    password_hash: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    is_admin: bool = False
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Product:
    id: int
    name: str
    description: str
    short_description: str
    price: float
    image_url: str
    category: str
    is_popular: bool = False
    is_best_seller: bool = False
    is_new: bool = False
    created_at: datetime = field(default_factory=utcnow)

    @property
    def is_featured(self) -> bool:
        return self.is_popular or self.is_best_seller or self.is_new


@dataclass
class LicenseType:
    id: int
    product_id: int
    name: str
    description: str
    price: float
    max_users: Optional[int] = 1        # None = unlimited seats


@dataclass
class License:
    id: int
    user_id: int
    product_id: int
    license_type_id: int
    license_key: str
    is_active: bool = True
    expires_at: Optional[datetime] = None
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class Order:
    id: int
    user_id: int
    total: float
    status: str = "pending"
    created_at: datetime = field(default_factory=utcnow)


@dataclass
class OrderItem:
    id: int
    order_id: int
    product_id: int
    license_type_id: int
    price: float                        # captured from the license type at order time
    quantity: int = 1


# Fields an admin may change through update_product / update_license_type.
PRODUCT_UPDATABLE_FIELDS = frozenset({
    "name", "description", "short_description", "price", "image_url",
    "category", "is_popular", "is_best_seller", "is_new",
})

LICENSE_TYPE_UPDATABLE_FIELDS = frozenset({
    "product_id", "name", "description", "price", "max_users",
})
