"""
Order fulfillment: turn a checkout into an Order, its OrderItems and one License per line.

Flow for place_order():
    1. Create the Order.
    2. For each line, in order: resolve product + license type, create the
       OrderItem (price captured from the license type), generate a key, and
       issue an active License that expires one year after checkout.
    3. Return everything, each license joined with its product and license type.

Every record created is staged in a UnitOfWork. If a line fails, the staged
records are discarded when `atomic_checkout` is on (default); with it off the
records created before the failing line are kept (legacy behavior).

Quantity is billing only: a line with quantity 3 still issues exactly one license.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Iterable, List, Mapping, Optional, Tuple, Union

from licensemart.core.config import LicenseMartConfig, get_config
from licensemart.core.errors import InvalidReferenceError, ValidationError
from licensemart.core.license_keys import generate_license_key
from licensemart.core.license_utils import add_one_year
from licensemart.data.entities import License, LicenseType, Order, OrderItem, Product, utcnow
from licensemart.data.store import EntityStore
from licensemart.utils.logger import get_logger, mask_key

logger = get_logger("core.fulfillment")


@dataclass
class OrderLine:
    """One cart selection: a product, the license type bought, and a quantity."""
    product_id: int
    license_type_id: int
    quantity: int = 1


@dataclass
class IssuedLicense:
    """A newly created license joined with its product and license type."""
    license: License
    product: Product
    license_type: LicenseType


@dataclass
class FulfillmentResult:
    order: Order
    order_items: List[OrderItem] = field(default_factory=list)
    licenses: List[IssuedLicense] = field(default_factory=list)


class UnitOfWork:
    """Tracks records created during one checkout so they can be discarded together."""

    def __init__(self, store: EntityStore):
        self.store = store
        self.staged: List[Tuple[str, int]] = []

    def stage(self, kind: str, record):
        self.staged.append((kind, record.id))
        return record

    def rollback(self) -> int:
        """Discard staged records newest first. Returns how many were removed."""
        removed = 0
        for kind, record_id in reversed(self.staged):
            if self.store.discard(kind, record_id):
                removed += 1
        self.staged.clear()
        return removed

    def commit(self) -> None:
        self.staged.clear()


def _as_line(line: Union[OrderLine, Mapping]) -> OrderLine:
    if isinstance(line, OrderLine):
        return line
    return OrderLine(
        product_id=line["product_id"],
        license_type_id=line["license_type_id"],
        quantity=line.get("quantity", 1) or 1,
    )


class OrderFulfillment:
    """Places orders against one EntityStore."""

    def __init__(
        self,
        store: EntityStore,
        config: Optional[LicenseMartConfig] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store
        self.config = config or get_config()
        self.clock = clock or utcnow

    def place_order(
        self,
        user_id: int,
        total: float,
        lines: Iterable[Union[OrderLine, Mapping]],
        status: Optional[str] = None,
    ) -> FulfillmentResult:
        """
        Create the order, its items and licenses.

        Args:
            user_id: Buyer; must exist.
            total: Amount charged, stored as given.
            lines: Cart selections, processed in order.
            status: Initial order status (defaults to config.default_order_status).

        Raises:
            ValidationError: no lines, or a quantity below 1.
            InvalidReferenceError: unknown user, product or license type, or a
                license type that belongs to another product.
        """
        lines = [_as_line(line) for line in lines]
        if not lines:
            raise ValidationError("Order must contain at least one item", {"field": "items"})
        for idx, line in enumerate(lines):
            if line.quantity < 1:
                raise ValidationError(
                    "quantity must be at least 1",
                    {"field": f"items.{idx}.quantity"},
                )

        with self.store.lock:
            if self.store.get_user(user_id) is None:
                raise InvalidReferenceError("User not found", {"user_id": user_id})

            issued_at = self.clock()
            expires_at = add_one_year(issued_at)
            uow = UnitOfWork(self.store)

            try:
                result = self._fulfill(uow, user_id, total, lines, status, issued_at, expires_at)
            except Exception:
                if self.config.atomic_checkout:
                    removed = uow.rollback()
                    logger.warning("Checkout for user %s failed; rolled back %d records", user_id, removed)
                else:
                    kept = len(uow.staged)
                    uow.commit()
                    logger.warning("Checkout for user %s failed; %d records left in place", user_id, kept)
                raise

            uow.commit()

        expected_total = round(sum(item.price * item.quantity for item in result.order_items), 2)
        if abs(expected_total - float(total)) > 0.005:
            logger.warning(
                "Order %d total %.2f differs from line prices %.2f",
                result.order.id, float(total), expected_total,
            )
        logger.info(
            "Placed order %d for user %d: %d items, licenses %s",
            result.order.id, user_id, len(result.order_items),
            [mask_key(issued.license.license_key) for issued in result.licenses],
        )
        return result

    def _fulfill(
        self,
        uow: UnitOfWork,
        user_id: int,
        total: float,
        lines: List[OrderLine],
        status: Optional[str],
        issued_at: datetime,
        expires_at: datetime,
    ) -> FulfillmentResult:
        order = uow.stage("order", self.store.create_order(
            user_id=user_id,
            total=total,
            status=status or self.config.default_order_status,
            created_at=issued_at,
        ))
        result = FulfillmentResult(order=order)

        for line in lines:
            product = self.store.get_product(line.product_id)
            license_type = self.store.get_license_type(line.license_type_id)
            if product is None or license_type is None:
                raise InvalidReferenceError(
                    "Invalid product or license type",
                    {"product_id": line.product_id, "license_type_id": line.license_type_id},
                )
            if license_type.product_id != product.id:
                raise InvalidReferenceError(
                    "License type does not belong to product",
                    {"product_id": line.product_id, "license_type_id": line.license_type_id},
                )

            result.order_items.append(uow.stage("order_item", self.store.create_order_item(
                order_id=order.id,
                product_id=product.id,
                license_type_id=license_type.id,
                quantity=line.quantity,
                price=license_type.price,
            )))

            license_key = generate_license_key(self.store, product.id, license_type.id)
            license = uow.stage("license", self.store.create_license(
                user_id=user_id,
                product_id=product.id,
                license_type_id=license_type.id,
                license_key=license_key,
                is_active=True,
                expires_at=expires_at,
                created_at=issued_at,
            ))
            result.licenses.append(IssuedLicense(license=license, product=product, license_type=license_type))

        return result
