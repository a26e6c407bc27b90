"""
Admin API: catalog CRUD (products, license types, categories) and read-only
listings of users and orders.
"""
from typing import List

from fastapi import APIRouter, Depends, Response

from licensemart.api.dependencies import get_store, verify_admin_api_key
from licensemart.api.models import (
    CategoryRequest,
    LicenseTypeCreateRequest,
    LicenseTypeResponse,
    LicenseTypeUpdateRequest,
    OrderDetail,
    ProductCreateRequest,
    ProductResponse,
    ProductUpdateRequest,
    UserResponse,
    order_detail,
)
from licensemart.core.errors import NotFoundError
from licensemart.data.store import EntityStore
from licensemart.utils.logger import get_logger

logger = get_logger("api.admin")

router = APIRouter(
    prefix="/admin",
    tags=["admin"],
    dependencies=[Depends(verify_admin_api_key)],
)


# ============================================================================
# Users and orders
# ============================================================================

@router.get("/users", response_model=List[UserResponse])
async def list_users(store: EntityStore = Depends(get_store)):
    """All users, without password hashes."""
    return [UserResponse.model_validate(user) for user in store.list_users()]


@router.get("/orders", response_model=List[OrderDetail])
async def list_orders(store: EntityStore = Depends(get_store)):
    """All orders with their items joined to product and license type."""
    return [order_detail(store, order) for order in store.list_all_orders()]


# ============================================================================
# Products
# ============================================================================

@router.post("/products", response_model=ProductResponse, status_code=201)
async def create_product(request: ProductCreateRequest, store: EntityStore = Depends(get_store)):
    product = store.create_product(**request.model_dump())
    logger.info("Created product %d (%s)", product.id, product.name)
    return ProductResponse.model_validate(product)


@router.put("/products/{product_id}", response_model=ProductResponse)
async def update_product(
    product_id: int,
    request: ProductUpdateRequest,
    store: EntityStore = Depends(get_store),
):
    product = store.update_product(product_id, request.model_dump(exclude_unset=True))
    logger.info("Updated product %d", product_id)
    return ProductResponse.model_validate(product)


@router.delete("/products/{product_id}", status_code=204)
async def delete_product(product_id: int, store: EntityStore = Depends(get_store)):
    """Delete a product. License types and issued licenses are left untouched."""
    if not store.delete_product(product_id):
        raise NotFoundError("Product not found", {"id": product_id})
    logger.info("Deleted product %d", product_id)
    return Response(status_code=204)


# ============================================================================
# License types
# ============================================================================

@router.post("/license-types", response_model=LicenseTypeResponse, status_code=201)
async def create_license_type(request: LicenseTypeCreateRequest, store: EntityStore = Depends(get_store)):
    license_type = store.create_license_type(**request.model_dump())
    logger.info("Created license type %d for product %d", license_type.id, license_type.product_id)
    return LicenseTypeResponse.model_validate(license_type)


@router.put("/license-types/{license_type_id}", response_model=LicenseTypeResponse)
async def update_license_type(
    license_type_id: int,
    request: LicenseTypeUpdateRequest,
    store: EntityStore = Depends(get_store),
):
    license_type = store.update_license_type(license_type_id, request.model_dump(exclude_unset=True))
    logger.info("Updated license type %d", license_type_id)
    return LicenseTypeResponse.model_validate(license_type)


@router.delete("/license-types/{license_type_id}", status_code=204)
async def delete_license_type(license_type_id: int, store: EntityStore = Depends(get_store)):
    if not store.delete_license_type(license_type_id):
        raise NotFoundError("License type not found", {"id": license_type_id})
    logger.info("Deleted license type %d", license_type_id)
    return Response(status_code=204)


# ============================================================================
# Categories (admin-managed set; independent of product category labels)
# ============================================================================

@router.get("/categories", response_model=List[str])
async def list_categories(store: EntityStore = Depends(get_store)):
    return store.list_categories()


@router.post("/categories", response_model=str, status_code=201)
async def create_category(request: CategoryRequest, store: EntityStore = Depends(get_store)):
    return store.create_category(request.name)


@router.delete("/categories/{name}", status_code=204)
async def delete_category(name: str, store: EntityStore = Depends(get_store)):
    if not store.delete_category(name):
        raise NotFoundError("Category not found", {"name": name})
    return Response(status_code=204)
