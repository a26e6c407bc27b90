"""
Pydantic models for LicenseMart API requests and responses.

Request models use extra="forbid" so unknown fields are rejected instead of
being merged into stored records.
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from licensemart.data.entities import License, Order
from licensemart.data.store import EntityStore


# ============================================================================
# Catalog
# ============================================================================

class ProductResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

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
    created_at: datetime


class ProductCreateRequest(BaseModel):
    """Body of POST /admin/products."""
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)
    description: str
    short_description: str
    price: float = Field(..., ge=0)
    image_url: str
    category: str = Field(..., min_length=1)
    is_popular: bool = False
    is_best_seller: bool = False
    is_new: bool = False


class ProductUpdateRequest(BaseModel):
    """Body of PUT /admin/products/{id}; only the fields sent are changed."""
    model_config = ConfigDict(extra="forbid")

    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    short_description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    image_url: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1)
    is_popular: Optional[bool] = None
    is_best_seller: Optional[bool] = None
    is_new: Optional[bool] = None

    @field_validator("*")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class LicenseTypeResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    name: str
    description: str
    price: float
    max_users: Optional[int] = Field(None, description="Seat count; null means unlimited")


class LicenseTypeCreateRequest(BaseModel):
    """Body of POST /admin/license-types."""
    model_config = ConfigDict(extra="forbid")

    product_id: int
    name: str = Field(..., min_length=1)
    description: str
    price: float = Field(..., ge=0)
    max_users: Optional[int] = Field(1, ge=1)


class LicenseTypeUpdateRequest(BaseModel):
    """Body of PUT /admin/license-types/{id}. max_users may be set to null (unlimited)."""
    model_config = ConfigDict(extra="forbid")

    product_id: Optional[int] = None
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    max_users: Optional[int] = Field(None, ge=1)

    @field_validator("product_id", "name", "description", "price")
    @classmethod
    def _not_null(cls, value):
        if value is None:
            raise ValueError("may not be null")
        return value


class CategoryRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., min_length=1)


# ============================================================================
# Users
# ============================================================================

class RegisterRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    email: EmailStr
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    is_admin: bool = False


class LoginRequest(BaseModel):
    model_config = ConfigDict(extra="forbid")

    username: str
    password: str


class UserResponse(BaseModel):
    """A user as returned by the API; the password hash is never included."""
    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    email: str
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    company: Optional[str] = None
    is_admin: bool = False
    created_at: datetime


# ============================================================================
# Licenses
# ============================================================================

class LicenseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    product_id: int
    license_type_id: int
    license_key: str
    is_active: bool
    expires_at: Optional[datetime] = None
    created_at: datetime


class LicenseDetail(LicenseResponse):
    """License joined with its product and license type (null if since deleted)."""
    product: Optional[ProductResponse] = None
    license_type: Optional[LicenseTypeResponse] = None


class LicenseStatusDetail(LicenseDetail):
    days_until_expiration: Optional[int] = None
    expiring_soon: bool = False


# ============================================================================
# Orders
# ============================================================================

class OrderInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    user_id: int
    total: float = Field(..., ge=0)
    status: Optional[str] = None


class OrderItemInput(BaseModel):
    model_config = ConfigDict(extra="forbid")

    product_id: int
    license_type_id: int
    quantity: int = Field(1, ge=1)


class PlaceOrderRequest(BaseModel):
    """Body of POST /orders."""
    model_config = ConfigDict(extra="forbid")

    order: OrderInput
    items: List[OrderItemInput]


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: int
    total: float
    status: str
    created_at: datetime


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    order_id: int
    product_id: int
    license_type_id: int
    quantity: int
    price: float


class OrderItemDetail(OrderItemResponse):
    product: Optional[ProductResponse] = None
    license_type: Optional[LicenseTypeResponse] = None


class OrderDetail(OrderResponse):
    items: List[OrderItemDetail] = Field(default_factory=list)


class PlaceOrderResponse(BaseModel):
    order: OrderResponse
    order_items: List[OrderItemResponse]
    licenses: List[LicenseDetail]


# ============================================================================
# Service
# ============================================================================

class HealthResponse(BaseModel):
    status: str
    service: str
    version: str
    counts: Dict[str, int]


# ============================================================================
# Read-side joins
# ============================================================================

def _product_or_none(store: EntityStore, product_id: int) -> Optional[ProductResponse]:
    product = store.get_product(product_id)
    return ProductResponse.model_validate(product) if product else None


def _license_type_or_none(store: EntityStore, license_type_id: int) -> Optional[LicenseTypeResponse]:
    license_type = store.get_license_type(license_type_id)
    return LicenseTypeResponse.model_validate(license_type) if license_type else None


def license_detail(store: EntityStore, license: License) -> LicenseDetail:
    return LicenseDetail(
        **LicenseResponse.model_validate(license).model_dump(),
        product=_product_or_none(store, license.product_id),
        license_type=_license_type_or_none(store, license.license_type_id),
    )


def order_detail(store: EntityStore, order: Order) -> OrderDetail:
    items = [
        OrderItemDetail(
            **OrderItemResponse.model_validate(item).model_dump(),
            product=_product_or_none(store, item.product_id),
            license_type=_license_type_or_none(store, item.license_type_id),
        )
        for item in store.list_order_items(order.id)
    ]
    return OrderDetail(**OrderResponse.model_validate(order).model_dump(), items=items)
