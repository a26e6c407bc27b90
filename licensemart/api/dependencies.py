"""
FastAPI dependencies resolving the per-app store, workflow and config.

create_app() puts them on app.state; routes reach them through these functions
so tests can swap them with app.dependency_overrides.
"""
from typing import Optional

from fastapi import Depends, Header, Request

from licensemart.core.config import LicenseMartConfig
from licensemart.core.errors import AuthenticationError
from licensemart.core.fulfillment import OrderFulfillment
from licensemart.data.store import EntityStore


def get_store(request: Request) -> EntityStore:
    return request.app.state.store


def get_fulfillment(request: Request) -> OrderFulfillment:
    return request.app.state.fulfillment


def get_app_config(request: Request) -> LicenseMartConfig:
    return request.app.state.config


def verify_admin_api_key(
    api_key: Optional[str] = Header(None, alias="X-Admin-API-Key"),
    config: LicenseMartConfig = Depends(get_app_config),
) -> Optional[str]:
    """
    Require X-Admin-API-Key when an admin key is configured.

    With no key configured the admin surface stays open.
    """
    expected_key = config.admin_api_key
    if not expected_key:
        return None
    if api_key != expected_key:
        raise AuthenticationError("Invalid admin API key")
    return api_key
