"""Pytest configuration for LicenseMart tests."""

from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient

from licensemart.api.server import create_app
from licensemart.core.config import LicenseMartConfig
from licensemart.core.fulfillment import OrderFulfillment
from licensemart.data.seed import load_seed_data
from licensemart.data.store import EntityStore

# Fixed checkout time so expiry dates are predictable.
FIXED_NOW = datetime(2024, 1, 15, 10, 30, tzinfo=timezone.utc)


@pytest.fixture
def config():
    """Defaults, independent of config/default.yaml and LICENSEMART_* variables."""
    return LicenseMartConfig()


@pytest.fixture
def empty_store():
    return EntityStore()


@pytest.fixture
def store():
    """A fresh store with the sample catalog: users 1-2, products 1-3, license types 1-6."""
    return load_seed_data(EntityStore())


@pytest.fixture
def fulfillment(store, config):
    return OrderFulfillment(store, config=config, clock=lambda: FIXED_NOW)


@pytest.fixture
def app(store, config):
    return create_app(config=config, store=store)


@pytest.fixture
def client(app):
    return TestClient(app)
