"""
Helpers around issued licenses: expiry arithmetic and the downloadable license file.
"""
import re
from datetime import datetime, timedelta, timezone
from typing import List, Optional

ACTIVATION_INSTRUCTIONS = [
    "Download the software from your account or using the download link in your confirmation email.",
    "Install the software on your computer.",
    "When prompted, enter the license key exactly as shown above.",
    "Your software will validate the license key and activate your product.",
]


def add_one_year(moment: datetime) -> datetime:
    """Same month, day and time one year later; 29 February becomes 28 February."""
    try:
        return moment.replace(year=moment.year + 1)
    except ValueError:
        return moment.replace(year=moment.year + 1, day=28)


def days_until_expiration(expires_at: datetime, now: Optional[datetime] = None) -> int:
    """Whole calendar days from today until the expiry date (negative once expired)."""
    now = now or datetime.now(timezone.utc)
    if expires_at.tzinfo is not None and now.tzinfo is not None:
        now = now.astimezone(expires_at.tzinfo)
    return (expires_at.date() - now.date()).days


def is_about_to_expire(expires_at: datetime, now: Optional[datetime] = None, window_days: int = 30) -> bool:
    """True if the license is still valid but expires within `window_days`."""
    now = now or datetime.now(timezone.utc)
    return now < expires_at <= now + timedelta(days=window_days)


def activation_instructions(product_name: str) -> List[str]:
    # Every product shares the same steps for now.
    return list(ACTIVATION_INSTRUCTIONS)


def license_filename(product_name: str) -> str:
    return re.sub(r"\s+", "_", product_name).lower() + "_license.txt"


def render_license_file(
    license_key: str,
    product_name: str,
    license_type_name: str,
    expires_at: Optional[datetime],
) -> str:
    """Plain-text license file handed to the customer."""
    expires = expires_at.date().isoformat() if expires_at else "Never"
    steps = "\n".join(
        f"{idx}. {step}" for idx, step in enumerate(activation_instructions(product_name), 1)
    )
    return (
        f"License Key: {license_key}\n"
        f"Product: {product_name}\n"
        f"License Type: {license_type_name}\n"
        f"Expires: {expires}\n"
        "\n"
        "Activation Instructions:\n"
        f"{steps}\n"
    )
