"""
Shopping cart for storefront clients.

The server never stores carts: a client keeps one of these in memory and turns
it into a POST /orders body at checkout.
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class CartItem:
    """A license selection with snapshots of the product and license type as browsed."""
    id: str
    product: Dict[str, Any]
    license_type: Dict[str, Any]
    quantity: int = 1

    @property
    def line_total(self) -> float:
        return float(self.license_type["price"]) * self.quantity


@dataclass
class Cart:
    items: List[CartItem] = field(default_factory=list)

    def add(self, product: Dict[str, Any], license_type: Dict[str, Any], quantity: int = 1) -> CartItem:
        if quantity < 1:
            raise ValueError("quantity must be at least 1")
        item = CartItem(
            id=str(uuid.uuid4()),
            product=dict(product),
            license_type=dict(license_type),
            quantity=quantity,
        )
        self.items.append(item)
        return item

    def remove(self, item_id: str) -> bool:
        before = len(self.items)
        self.items = [item for item in self.items if item.id != item_id]
        return len(self.items) != before

    def clear(self) -> None:
        self.items = []

    def total(self) -> float:
        return round(sum(item.line_total for item in self.items), 2)

    def __len__(self) -> int:
        return len(self.items)

    def to_order_request(self, user_id: int, status: Optional[str] = None) -> Dict[str, Any]:
        """Build the JSON body for POST /orders."""
        order: Dict[str, Any] = {"user_id": user_id, "total": self.total()}
        if status:
            order["status"] = status
        return {
            "order": order,
            "items": [
                {
                    "product_id": item.product["id"],
                    "license_type_id": item.license_type["id"],
                    "quantity": item.quantity,
                }
                for item in self.items
            ],
        }
