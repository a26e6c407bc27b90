"""
FastAPI server for the LicenseMart storefront.

Catalog browsing, registration/login, checkout with license issuance, license
lookups and downloads. Admin routes live in licensemart.api.admin.

Usage:
    python -m licensemart.api.server
    # or
    uvicorn licensemart.api.server:app --reload --port 8000
"""
import os
import time
import traceback
from typing import List, Optional

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response
from starlette.middleware.base import BaseHTTPMiddleware

from licensemart import __version__
from licensemart.api.admin import router as admin_router
from licensemart.api.dependencies import get_app_config, get_fulfillment, get_store
from licensemart.api.models import (
    HealthResponse,
    LicenseDetail,
    LicenseResponse,
    LicenseStatusDetail,
    LicenseTypeResponse,
    LoginRequest,
    OrderDetail,
    OrderItemResponse,
    OrderResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    ProductResponse,
    RegisterRequest,
    UserResponse,
    license_detail,
    order_detail,
)
from licensemart.core.config import LicenseMartConfig, get_config
from licensemart.core.errors import (
    AuthenticationError,
    ConflictError,
    LicenseMartError,
    NotFoundError,
)
from licensemart.core.fulfillment import OrderFulfillment, OrderLine
from licensemart.core.license_utils import (
    days_until_expiration,
    is_about_to_expire,
    license_filename,
    render_license_file,
)
from licensemart.core.security import hash_password, verify_password
from licensemart.data.entities import License
from licensemart.data.seed import load_seed_data
from licensemart.data.store import EntityStore
from licensemart.utils.logger import get_logger

logger = get_logger("api.server")

SERVICE_NAME = "LicenseMart API"


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Logs method, path, status and duration of every non-OPTIONS request."""

    async def dispatch(self, request: Request, call_next):
        if request.method == "OPTIONS":
            return await call_next(request)
        t0 = time.perf_counter()
        response = await call_next(request)
        duration_ms = round((time.perf_counter() - t0) * 1000, 1)
        logger.info(
            "[REQUEST] %s %s -> %d  %.1fms",
            request.method, request.url.path, response.status_code, duration_ms,
        )
        return response


def _is_dev() -> bool:
    return os.getenv("ENV", "development").lower() in ("development", "dev", "")


def _register_exception_handlers(app: FastAPI) -> None:

    @app.exception_handler(LicenseMartError)
    async def licensemart_error_handler(request: Request, exc: LicenseMartError):
        if exc.status_code >= 500:
            logger.error("%s on %s: %s", type(exc).__name__, request.url.path, exc.message)
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        errors = [
            {"loc": list(err.get("loc", ())), "msg": err.get("msg", ""), "type": err.get("type", "")}
            for err in exc.errors()
        ]
        return JSONResponse(status_code=400, content={"message": "Invalid request data", "errors": errors})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Log unhandled exceptions and return a generic 500."""
        logger.error("Unhandled exception on %s: %s\n%s", request.url.path, exc, traceback.format_exc())
        body = {"message": "Internal server error"}
        if _is_dev():
            body["detail"] = str(exc)
            body["type"] = type(exc).__name__
        return JSONResponse(status_code=500, content=body)


def _license_with_status(store: EntityStore, license: License, config: LicenseMartConfig) -> LicenseStatusDetail:
    detail = license_detail(store, license)
    days_left = None
    expiring_soon = False
    if license.expires_at is not None:
        days_left = days_until_expiration(license.expires_at)
        expiring_soon = is_about_to_expire(license.expires_at, window_days=config.expiry_warning_days)
    return LicenseStatusDetail(
        **detail.model_dump(),
        days_until_expiration=days_left,
        expiring_soon=expiring_soon,
    )


def _register_routes(app: FastAPI) -> None:

    # ------------------------------------------------------------------
    # Service
    # ------------------------------------------------------------------

    @app.get("/", response_model=HealthResponse)
    @app.get("/health", response_model=HealthResponse)
    async def health(store: EntityStore = Depends(get_store)):
        """Health check with record counts."""
        return HealthResponse(
            status="online",
            service=SERVICE_NAME,
            version=__version__,
            counts={
                "users": store.count("user"),
                "products": store.count("product"),
                "license_types": store.count("license_type"),
                "licenses": store.count("license"),
                "orders": store.count("order"),
            },
        )

    # ------------------------------------------------------------------
    # Catalog
    # ------------------------------------------------------------------

    @app.get("/products", response_model=List[ProductResponse])
    async def list_products(store: EntityStore = Depends(get_store)):
        return [ProductResponse.model_validate(p) for p in store.list_products()]

    @app.get("/products/featured", response_model=List[ProductResponse])
    async def list_featured_products(store: EntityStore = Depends(get_store)):
        """Products flagged popular, best-seller or new."""
        return [ProductResponse.model_validate(p) for p in store.list_featured_products()]

    @app.get("/products/categories", response_model=List[str])
    async def list_product_categories(store: EntityStore = Depends(get_store)):
        """Category labels carried by current products (not the admin-managed set)."""
        return store.list_product_categories()

    @app.get("/products/category/{category}", response_model=List[ProductResponse])
    async def list_products_by_category(category: str, store: EntityStore = Depends(get_store)):
        return [ProductResponse.model_validate(p) for p in store.list_products_by_category(category)]

    @app.get("/products/{product_id}", response_model=ProductResponse)
    async def get_product(product_id: int, store: EntityStore = Depends(get_store)):
        product = store.get_product(product_id)
        if product is None:
            raise NotFoundError("Product not found", {"id": product_id})
        return ProductResponse.model_validate(product)

    @app.get("/products/{product_id}/license-types", response_model=List[LicenseTypeResponse])
    async def list_license_types(product_id: int, store: EntityStore = Depends(get_store)):
        return [LicenseTypeResponse.model_validate(lt) for lt in store.list_license_types(product_id)]

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    @app.post("/users/register", response_model=UserResponse, status_code=201)
    async def register(request: RegisterRequest, store: EntityStore = Depends(get_store)):
        """Create an account. Username and email must be unused (case-insensitive)."""
        with store.lock:
            if store.get_user_by_email(request.email) is not None:
                raise ConflictError("Email already in use", {"field": "email"})
            if store.get_user_by_username(request.username) is not None:
                raise ConflictError("Username already taken", {"field": "username"})
            fields = request.model_dump(exclude={"password"})
            user = store.create_user(password_hash=hash_password(request.password), **fields)
        logger.info("Registered user %d (%s)", user.id, user.username)
        return UserResponse.model_validate(user)

    @app.post("/users/login", response_model=UserResponse)
    async def login(request: LoginRequest, store: EntityStore = Depends(get_store)):
        user = store.get_user_by_username(request.username)
        if user is None or not verify_password(request.password, user.password_hash):
            raise AuthenticationError("Invalid username or password")
        return UserResponse.model_validate(user)

    @app.get("/users/{user_id}/licenses", response_model=List[LicenseDetail])
    async def list_user_licenses(user_id: int, store: EntityStore = Depends(get_store)):
        return [license_detail(store, lic) for lic in store.list_licenses(user_id)]

    @app.get("/users/{user_id}/licenses/active", response_model=List[LicenseDetail])
    async def list_active_user_licenses(user_id: int, store: EntityStore = Depends(get_store)):
        return [license_detail(store, lic) for lic in store.list_licenses_by_status(user_id, True)]

    @app.get("/users/{user_id}/orders", response_model=List[OrderDetail])
    async def list_user_orders(user_id: int, store: EntityStore = Depends(get_store)):
        return [order_detail(store, order) for order in store.list_orders(user_id)]

    # ------------------------------------------------------------------
    # Orders
    # ------------------------------------------------------------------

    @app.post("/orders", response_model=PlaceOrderResponse, status_code=201)
    async def place_order(
        request: PlaceOrderRequest,
        fulfillment: OrderFulfillment = Depends(get_fulfillment),
    ):
        """
        Checkout: create the order, one order item and one license per line.

        Payment is simulated; the total is recorded as sent.
        """
        result = fulfillment.place_order(
            user_id=request.order.user_id,
            total=request.order.total,
            status=request.order.status,
            lines=[
                OrderLine(
                    product_id=item.product_id,
                    license_type_id=item.license_type_id,
                    quantity=item.quantity,
                )
                for item in request.items
            ],
        )
        return PlaceOrderResponse(
            order=OrderResponse.model_validate(result.order),
            order_items=[OrderItemResponse.model_validate(item) for item in result.order_items],
            licenses=[
                LicenseDetail(
                    **LicenseResponse.model_validate(issued.license).model_dump(),
                    product=ProductResponse.model_validate(issued.product),
                    license_type=LicenseTypeResponse.model_validate(issued.license_type),
                )
                for issued in result.licenses
            ],
        )

    @app.get("/orders/{order_id}", response_model=OrderDetail)
    async def get_order(order_id: int, store: EntityStore = Depends(get_store)):
        order = store.get_order(order_id)
        if order is None:
            raise NotFoundError("Order not found", {"id": order_id})
        return order_detail(store, order)

    # ------------------------------------------------------------------
    # Licenses
    # ------------------------------------------------------------------

    @app.get("/licenses/key/{license_key}", response_model=LicenseStatusDetail)
    async def get_license_by_key(
        license_key: str,
        store: EntityStore = Depends(get_store),
        config: LicenseMartConfig = Depends(get_app_config),
    ):
        license = store.get_license_by_key(license_key)
        if license is None:
            raise NotFoundError("License not found")
        return _license_with_status(store, license, config)

    @app.get("/licenses/{license_id}", response_model=LicenseStatusDetail)
    async def get_license(
        license_id: int,
        store: EntityStore = Depends(get_store),
        config: LicenseMartConfig = Depends(get_app_config),
    ):
        license = store.get_license(license_id)
        if license is None:
            raise NotFoundError("License not found", {"id": license_id})
        return _license_with_status(store, license, config)

    @app.get("/licenses/{license_id}/file")
    async def download_license_file(license_id: int, store: EntityStore = Depends(get_store)):
        """Plain-text license file with activation instructions."""
        license = store.get_license(license_id)
        if license is None:
            raise NotFoundError("License not found", {"id": license_id})
        product = store.get_product(license.product_id)
        license_type = store.get_license_type(license.license_type_id)
        if product is None or license_type is None:
            raise NotFoundError("Product or license type for this license no longer exists", {"id": license_id})
        content = render_license_file(
            license_key=license.license_key,
            product_name=product.name,
            license_type_name=license_type.name,
            expires_at=license.expires_at,
        )
        filename = license_filename(product.name)
        return Response(
            content=content,
            media_type="text/plain",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )


def create_app(
    config: Optional[LicenseMartConfig] = None,
    store: Optional[EntityStore] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        config: Settings; defaults to the global config.
        store: Entity store to serve; a new one (seeded when
            config.seed_on_startup) is created if omitted.
    """
    config = config or get_config()
    if store is None:
        store = EntityStore()
        if config.seed_on_startup:
            load_seed_data(store)

    app = FastAPI(
        title=SERVICE_NAME,
        description="Software license storefront: catalog, checkout and license issuance",
        version=__version__,
    )
    app.state.config = config
    app.state.store = store
    app.state.fulfillment = OrderFulfillment(store, config=config)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    _register_exception_handlers(app)
    _register_routes(app)
    app.include_router(admin_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    config = get_config()
    print("=" * 60)
    print("LicenseMart API Server")
    print("=" * 60)
    print(f"API Documentation: http://localhost:{config.port}/docs")
    print("")
    print("Environment variables:")
    print("  LICENSEMART_SEED=0              - Start with an empty store")
    print("  LICENSEMART_ATOMIC_CHECKOUT=0   - Keep partial orders on failed checkout")
    print("  LICENSEMART_ADMIN_API_KEY=...   - Require X-Admin-API-Key on /admin routes")
    print("=" * 60)

    uvicorn.run(app, host=config.host, port=config.port)
