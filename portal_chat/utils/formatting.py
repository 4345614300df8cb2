"""Pure formatting helpers for admin notifications."""

from typing import Optional, Union


PREVIEW_LENGTH = 50
ELLIPSIS = "..."

# sender names that belong to staff accounts even when typed as installers
STAFF_NAME_MARKERS = ("admin", "support")

TITLES = {
    "payment_request": "New Payment Request",
    "payment_comment": "New Payment Comment",
    "serial_submission": "New Serial Number Submitted",
    "new_installer": "New Installer Registration",
}


def truncate(text: str, limit: int = PREVIEW_LENGTH) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + ELLIPSIS


def format_amount(amount: Union[int, float]) -> str:
    """Thousands-separated amount, whole numbers without decimals."""
    if isinstance(amount, float) and amount.is_integer():
        amount = int(amount)
    return f"{amount:,}"


def is_staff_name(name: Optional[str]) -> bool:
    lowered = (name or "").lower()
    return any(marker in lowered for marker in STAFF_NAME_MARKERS)


def new_message_title(sender_name: str) -> str:
    return f"New Message from {sender_name}"


def payment_request_message(installer_name: str, amount: Union[int, float]) -> str:
    return f"{installer_name} submitted a payment request for PKR {format_amount(amount)}"


def payment_comment_message(user_name: str, comment: str, limit: int = PREVIEW_LENGTH) -> str:
    return f'{user_name} added a comment: "{truncate(comment, limit)}"'


def serial_submission_message(installer_name: str, serial_number: str) -> str:
    return f"{installer_name} submitted serial number {serial_number}"


def new_installer_message(installer_name: str) -> str:
    return f"{installer_name} registered as a new installer"
