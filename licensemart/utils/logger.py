"""
Logging configuration for LicenseMart.

All modules log under the "licensemart" logger (level from LOG_LEVEL) to
stdout. License keys must go through mask_key before being logged; only the
product and seat-count prefix is ever written out in full.
"""
import logging
import os
import sys

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
KEY_MASK = "********"

logger = logging.getLogger("licensemart")
logger.setLevel(LOG_LEVEL)

# Importing this module twice must not attach a second handler.
if not logger.handlers:
    stdout_handler = logging.StreamHandler(sys.stdout)
    stdout_handler.setLevel(LOG_LEVEL)
    stdout_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
    logger.addHandler(stdout_handler)

# uvicorn configures the root logger too; keep store and checkout lines single.
logger.propagate = False


def get_logger(name: str = None) -> logging.Logger:
    """
    Logger for one LicenseMart module.

    Args:
        name: Dotted module path under the package, e.g. "core.fulfillment"
            gives the "licensemart.core.fulfillment" logger. None returns the
            package logger itself.
    """
    if name:
        return logging.getLogger(f"licensemart.{name}")
    return logger


def mask_key(license_key: str) -> str:
    """
    Hide the random segments of a license key.

    ``DEVE-TEAM5-1A2B3C4D-5E6F7A8B-9C0D1E2F`` becomes
    ``DEVE-TEAM5-********-********-********``. Anything without a
    product/type prefix is masked entirely.
    """
    parts = license_key.split("-")
    if len(parts) <= 2:
        return "****"
    return "-".join(parts[:2] + [KEY_MASK] * (len(parts) - 2))
