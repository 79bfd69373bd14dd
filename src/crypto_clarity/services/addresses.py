"""Blockchain address helpers.

Extraction is pure and deterministic: it only looks for EVM-style addresses
(``0x`` followed by 40 hex characters) and never touches the network.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Final

ADDRESS_PATTERN: Final = re.compile(r"0x[a-fA-F0-9]{40}")
_FULL_ADDRESS: Final = re.compile(r"^0x[a-fA-F0-9]{40}$")


class AddressRole(str, Enum):
    """Where an address came from in a request."""

    SUSPICIOUS = "suspicious"
    USER = "user"
    EXTRACTED = "extracted"


SECTION_TITLES: Final[dict[AddressRole, str]] = {
    AddressRole.SUSPICIOUS: "Suspicious Address Analysis",
    AddressRole.USER: "Your Wallet Analysis",
    AddressRole.EXTRACTED: "Detected Address Analysis",
}


@dataclass(frozen=True)
class LabeledAddress:
    """An address tagged with the role it plays in the request."""

    address: str
    role: AddressRole

    @property
    def section_title(self) -> str:
        return SECTION_TITLES[self.role]

    def as_dict(self) -> dict[str, str]:
        return {"address": self.address, "role": self.role.value}


def is_valid_address(address: str | None) -> bool:
    """Return True if ``address`` is exactly one EVM-style address."""
    if not address:
        return False
    return bool(_FULL_ADDRESS.match(address.strip()))


def extract_addresses(text: str | None) -> list[str]:
    """Return the unique addresses found in ``text``.

    Matches keep the casing of their first occurrence and are returned in the
    order they first appear; later matches differing only in case are dropped.
    """
    if not text:
        return []
    seen: set[str] = set()
    found: list[str] = []
    for match in ADDRESS_PATTERN.finditer(text):
        address = match.group(0)
        key = address.lower()
        if key in seen:
            continue
        seen.add(key)
        found.append(address)
    return found


def merge_address_groups(
    suspicious: str | None = None,
    user: str | None = None,
    extracted: Iterable[str] = (),
) -> list[LabeledAddress]:
    """Combine request addresses in fixed precedence order.

    Order is the suspicious address, then the user's own address, then
    extracted addresses in extraction order. Case-insensitive duplicates
    collapse to their first occurrence.
    """
    candidates: list[LabeledAddress] = []
    if suspicious and suspicious.strip():
        candidates.append(LabeledAddress(suspicious.strip(), AddressRole.SUSPICIOUS))
    if user and user.strip():
        candidates.append(LabeledAddress(user.strip(), AddressRole.USER))
    for address in extracted:
        if address and address.strip():
            candidates.append(LabeledAddress(address.strip(), AddressRole.EXTRACTED))

    seen: set[str] = set()
    merged: list[LabeledAddress] = []
    for candidate in candidates:
        key = candidate.address.lower()
        if key in seen:
            continue
        seen.add(key)
        merged.append(candidate)
    return merged


def shorten(address: str, head: int = 6, tail: int = 4) -> str:
    """Return ``0x1234...abcd`` style shorthand for display."""
    if len(address) <= head + tail:
        return address
    return f"{address[:head]}...{address[-tail:]}"
