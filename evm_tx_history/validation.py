"""
Transaction History - Input Validation.

Checks run in the order that gives the clearest message: prefix, then
length, then the full pattern.
"""

import re
from typing import Any, Iterable, Optional

from evm_tx_history.exceptions import (
    InvalidAddressError,
    InvalidCategoryError,
    InvalidPageSizeError,
)
from evm_tx_history.models import ALL_CATEGORIES


ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
ADDRESS_LENGTH = 42
DEFAULT_PAGE_SIZE = 100


def validate_address(address: Any) -> str:
    """
    Validate an EVM address (0x + 40 hex chars, any case).

    Returns:
        The address unchanged

    Raises:
        InvalidAddressError: If the address does not conform
    """
    if not isinstance(address, str):
        raise InvalidAddressError("Address must be a string", address=None)
    if not address.startswith("0x"):
        raise InvalidAddressError("Address must start with 0x", address=address)
    if len(address) != ADDRESS_LENGTH:
        raise InvalidAddressError(
            f"Address must be {ADDRESS_LENGTH} characters", address=address
        )
    if not ADDRESS_PATTERN.match(address):
        raise InvalidAddressError("Invalid address format", address=address)
    return address


def clamp_page_size(requested: Optional[Any], max_configured: int) -> int:
    """
    Clamp a requested page size to the configured maximum.

    Args:
        requested: Caller's page size, or None for the default
        max_configured: Configured upper bound

    Returns:
        Page size in [1, max_configured]

    Raises:
        InvalidPageSizeError: If requested is not a positive integer
    """
    upper = max(1, max_configured)
    if requested is None:
        return min(DEFAULT_PAGE_SIZE, upper)
    if isinstance(requested, bool) or not isinstance(requested, int) or requested < 1:
        raise InvalidPageSizeError(
            "pageSize must be a positive integer", page_size=requested
        )
    return min(requested, upper)


def validate_categories(categories: Optional[Iterable[str]]) -> tuple[str, ...]:
    """
    Validate requested transfer categories.

    None selects every supported category. Order is kept, duplicates dropped.

    Raises:
        InvalidCategoryError: On an unknown category or an empty selection
    """
    if categories is None:
        return ALL_CATEGORIES
    if isinstance(categories, str):
        categories = [categories]

    selected: list[str] = []
    for category in categories:
        if category not in ALL_CATEGORIES:
            raise InvalidCategoryError(
                f"Unsupported category: {category}",
                category=str(category),
                allowed_categories=list(ALL_CATEGORIES),
            )
        if category not in selected:
            selected.append(category)

    if not selected:
        raise InvalidCategoryError(
            "At least one category is required",
            allowed_categories=list(ALL_CATEGORIES),
        )
    return tuple(selected)
