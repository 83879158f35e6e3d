"""Flip payload encoding — split a flip into public and private parts.

The node receives three hex payloads:

- ``public_hex``: the first half of the compressed images
- ``private_hex``: the remaining images followed by the orders
- ``hex``: every image followed by the orders

Each part is a sequence of length-prefixed items (Bitcoin-style varints).
The orders section holds two items: the canonical order and the author's
order, one byte per index.
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from flip_manager.engine.records import DEFAULT_ORDER

if TYPE_CHECKING:
    from collections.abc import Sequence


@dataclass(frozen=True)
class EncodedFlip:
    """Hex payloads submitted to the node."""

    hex: str
    public_hex: str
    private_hex: str

    @property
    def size(self) -> int:
        """Combined length of the public and private payloads (hex chars)."""
        return len(self.public_hex) + len(self.private_hex)


class FlipEncoder(Protocol):
    """Turns compressed images and an order into node payloads."""

    def __call__(
        self, compressed_pics: Sequence[bytes], order: Sequence[int]
    ) -> EncodedFlip: ...


def encode_varint(n: int) -> bytes:
    """Encode an integer as a Bitcoin-style variable-length integer."""
    if n < 0xFD:
        return struct.pack("<B", n)
    if n <= 0xFFFF:
        return b"\xfd" + struct.pack("<H", n)
    if n <= 0xFFFFFFFF:
        return b"\xfe" + struct.pack("<I", n)
    return b"\xff" + struct.pack("<Q", n)


def encode_items(items: Sequence[bytes]) -> bytes:
    """Encode a count-prefixed list of length-prefixed byte strings."""
    parts = [encode_varint(len(items))]
    for item in items:
        parts.append(encode_varint(len(item)))
        parts.append(item)
    return b"".join(parts)


def encode_flip(compressed_pics: Sequence[bytes], order: Sequence[int]) -> EncodedFlip:
    """Default :class:`FlipEncoder`."""
    pics = list(compressed_pics)
    half = len(pics) // 2
    orders = encode_items([bytes(DEFAULT_ORDER), bytes(order)])

    public = encode_items(pics[:half])
    private = encode_items(pics[half:]) + orders
    full = encode_items(pics) + orders
    return EncodedFlip(
        hex="0x" + full.hex(),
        public_hex="0x" + public.hex(),
        private_hex="0x" + private.hex(),
    )
