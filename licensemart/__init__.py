"""
LicenseMart - software license storefront

An in-memory storefront service with:
- Product catalog with per-product license types
- Checkout that issues one license key per order line
- License lookup, expiry status and downloadable license files
"""

from licensemart.core.config import LicenseMartConfig, get_config, set_config
from licensemart.core.fulfillment import FulfillmentResult, OrderFulfillment, OrderLine
from licensemart.data.store import EntityStore

__all__ = [
    'EntityStore',
    'OrderFulfillment',
    'OrderLine',
    'FulfillmentResult',
    'LicenseMartConfig',
    'get_config',
    'set_config',
]

__version__ = '0.1.0'
