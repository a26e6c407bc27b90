"""
Configuration management for LicenseMart.

Loads settings from YAML config file and provides typed access.
Environment variables (optionally from a .env file) override the YAML values.
"""
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional
import yaml

# Load environment variables from .env file
from dotenv import load_dotenv
load_dotenv()


def _project_root() -> Path:
    """Return project root (parent of licensemart package)."""
    return Path(__file__).resolve().parent.parent.parent


DEFAULT_CONFIG_PATH = _project_root() / "config" / "default.yaml"

_TRUTHY = ("1", "true", "yes", "on")


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in _TRUTHY


@dataclass
class LicenseMartConfig:
    """Configuration for the LicenseMart storefront."""

    # Store
    seed_on_startup: bool = True            # Load the sample catalog when the app starts

    # Checkout
    atomic_checkout: bool = True            # Roll back a checkout that fails part-way
    default_order_status: str = "pending"

    # Licenses
    expiry_warning_days: int = 30           # "Expiring soon" window for issued licenses

    # Admin
    admin_api_key: Optional[str] = None     # None = admin routes are open

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: List[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_yaml(cls, config_path: Optional[Path] = None) -> "LicenseMartConfig":
        """Load configuration from YAML file, then apply environment overrides."""
        path = config_path or DEFAULT_CONFIG_PATH
        data = {}
        if path.exists():
            with open(path, 'r') as f:
                data = yaml.safe_load(f) or {}

        store_config = data.get('store', {})
        checkout_config = data.get('checkout', {})
        licenses_config = data.get('licenses', {})
        admin_config = data.get('admin', {})
        server_config = data.get('server', {})

        config = cls(
            seed_on_startup=store_config.get('seed_on_startup', True),
            atomic_checkout=checkout_config.get('atomic', True),
            default_order_status=checkout_config.get('default_order_status', 'pending'),
            expiry_warning_days=licenses_config.get('expiry_warning_days', 30),
            admin_api_key=admin_config.get('api_key'),
            host=server_config.get('host', '0.0.0.0'),
            port=server_config.get('port', 8000),
            cors_origins=server_config.get('cors_origins', ["*"]),
        )
        return config.apply_env()

    def apply_env(self) -> "LicenseMartConfig":
        """Override fields from LICENSEMART_* environment variables."""
        self.seed_on_startup = _env_flag("LICENSEMART_SEED", self.seed_on_startup)
        self.atomic_checkout = _env_flag("LICENSEMART_ATOMIC_CHECKOUT", self.atomic_checkout)
        admin_key = os.getenv("LICENSEMART_ADMIN_API_KEY")
        if admin_key and admin_key.strip():
            self.admin_api_key = admin_key.strip()
        port = os.getenv("PORT")
        if port:
            self.port = int(port)
        return self


# Global config instance
_config: Optional[LicenseMartConfig] = None


def get_config() -> LicenseMartConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = LicenseMartConfig.from_yaml()
    return _config


def set_config(config: LicenseMartConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
