"""
API module for LicenseMart.

Provides the REST endpoints for storefront clients and the admin panel.
"""
from licensemart.api.models import (
    LicenseDetail,
    LicenseStatusDetail,
    OrderDetail,
    PlaceOrderRequest,
    PlaceOrderResponse,
    ProductResponse,
    UserResponse,
)

__all__ = [
    "LicenseDetail",
    "LicenseStatusDetail",
    "OrderDetail",
    "PlaceOrderRequest",
    "PlaceOrderResponse",
    "ProductResponse",
    "UserResponse",
]
