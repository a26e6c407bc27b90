"""
License key generation.

Keys look like ``DEVE-TEAM5-1A2B3C4D-5E6F7A8B-9C0D1E2F``: a product prefix, a
seat-count prefix, and three random 8-digit hex segments. Uniqueness is
probabilistic (96 random bits); the store is not checked for collisions.
"""
import re
import secrets
from typing import Callable

from licensemart.core.errors import NotFoundError
from licensemart.data.entities import LicenseType, Product
from licensemart.data.store import EntityStore

PRODUCT_PREFIX_LENGTH = 4
SINGLE_SEAT_PLACEHOLDER = "XXXX"
RANDOM_SEGMENTS = 3
SEGMENT_BYTES = 4

LICENSE_KEY_PATTERN = re.compile(
    r"^[^-]{1,4}-(TEAM\d+|XXXX)-[0-9A-F]{8}-[0-9A-F]{8}-[0-9A-F]{8}$"
)


def type_prefix(license_type: LicenseType) -> str:
    """``TEAM<N>`` for multi-seat licenses, the placeholder otherwise."""
    max_users = license_type.max_users if license_type.max_users is not None else 1
    if max_users > 1:
        return f"TEAM{max_users}"
    return SINGLE_SEAT_PLACEHOLDER


def product_prefix_for(name: str) -> str:
    """Upper-cased first four characters of the name, ignoring dashes."""
    prefix = name.replace("-", "")[:PRODUCT_PREFIX_LENGTH].upper()
    return prefix or SINGLE_SEAT_PLACEHOLDER


def format_license_key(
    product: Product,
    license_type: LicenseType,
    random_bytes: Callable[[int], bytes] = secrets.token_bytes,
) -> str:
    product_prefix = product_prefix_for(product.name)
    segments = [random_bytes(SEGMENT_BYTES).hex().upper() for _ in range(RANDOM_SEGMENTS)]
    return "-".join([product_prefix, type_prefix(license_type), *segments])


def generate_license_key(store: EntityStore, product_id: int, license_type_id: int) -> str:
    """Look up the product and license type, then format a fresh key."""
    product = store.get_product(product_id)
    license_type = store.get_license_type(license_type_id)
    if product is None or license_type is None:
        raise NotFoundError(
            "Product or license type not found",
            {"product_id": product_id, "license_type_id": license_type_id},
        )
    return format_license_key(product, license_type)
