"""Identity helpers.

Addresses are opaque strings. Only the zero identity has special meaning: it
marks mints in transfer notifications and is rejected wherever an owner or
balance operand is required.
"""

from typing import Optional

Address = str

ZERO_ADDRESS: Address = "0x" + "0" * 40


def is_zero_address(address: Optional[Address]) -> bool:
    """Return True for the reserved zero identity (None and "" included)."""
    if not address:
        return True
    return address.lower() == ZERO_ADDRESS
