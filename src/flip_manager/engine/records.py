"""Flip records — the immutable in-memory representation of a flip.

Records are frozen dataclasses; every mutation produces a new record via
:func:`dataclasses.replace`, so a snapshot of the collection can be shared
freely between concurrent readers.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, fields
from datetime import datetime
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterable

# Canonical image order; a submitted flip must be shuffled away from it
DEFAULT_ORDER: tuple[int, ...] = (0, 1, 2, 3)
FLIP_LENGTH = len(DEFAULT_ORDER)

# Fields a draft update may change; ids, hashes and timestamps are engine-owned
DRAFT_FIELDS: tuple[str, ...] = ("pics", "compressed_pics", "order", "hint")


class FlipType(enum.StrEnum):
    """Lifecycle states of a flip."""

    DRAFT = "draft"
    PUBLISHING = "publishing"
    PUBLISHED = "published"
    DELETING = "deleting"
    ARCHIVED = "archived"

    @property
    def is_pending(self) -> bool:
        """Whether a transaction for this state is awaiting confirmation."""
        return self in (FlipType.PUBLISHING, FlipType.DELETING)


@dataclass(frozen=True)
class Hint:
    """Keyword pair attached to a flip."""

    id: int
    words: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Hint:
        return cls(id=int(data["id"]), words=tuple(data.get("words", ())))

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "words": list(self.words)}


@dataclass(frozen=True)
class FlipRecord:
    """A single flip and its lifecycle state.

    Attributes:
        id: Stable identifier assigned at draft creation.
        type: Current lifecycle state.
        pics: Raw images, in canonical order.
        compressed_pics: Compressed images; the content fingerprint.
        order: Author-chosen permutation of image indices.
        hint: Keyword pair, if chosen.
        tx_hash: Submission transaction hash.
        delete_tx_hash: Deletion transaction hash.
        hash: On-chain content hash returned by the node.
        created_at: Set on first insert.
        modified_at: Set on every mutation.
        mined: Whether the last looked-up transaction left the mempool.
    """

    id: str
    type: FlipType = FlipType.DRAFT
    pics: tuple[bytes, ...] = ()
    compressed_pics: tuple[bytes, ...] = ()
    order: tuple[int, ...] = DEFAULT_ORDER
    hint: Hint | None = None
    tx_hash: str | None = None
    delete_tx_hash: str | None = None
    hash: str | None = None
    created_at: datetime | None = None
    modified_at: datetime | None = None
    mined: bool = False

    @property
    def is_pending(self) -> bool:
        return self.type.is_pending

    @property
    def pending_tx_hash(self) -> str | None:
        """Hash of the transaction the reconciliation loop should look up."""
        if self.type == FlipType.PUBLISHING:
            return self.tx_hash
        if self.type == FlipType.DELETING:
            return self.delete_tx_hash
        return None

    def has_content(self, compressed_pics: tuple[bytes, ...]) -> bool:
        """Whether this record carries exactly the given compressed images."""
        return bool(self.compressed_pics) and self.compressed_pics == tuple(compressed_pics)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FlipRecord:
        """Create a FlipRecord from its JSON-safe dict form."""
        hint = data.get("hint")
        return cls(
            id=str(data["id"]),
            type=FlipType(data.get("type", FlipType.DRAFT)),
            pics=tuple(bytes.fromhex(p) for p in data.get("pics", ())),
            compressed_pics=tuple(bytes.fromhex(p) for p in data.get("compressedPics", ())),
            order=tuple(int(i) for i in data.get("order", DEFAULT_ORDER)),
            hint=Hint.from_dict(hint) if hint else None,
            tx_hash=data.get("txHash"),
            delete_tx_hash=data.get("deleteTxHash"),
            hash=data.get("hash"),
            created_at=_parse_dt(data.get("createdAt")),
            modified_at=_parse_dt(data.get("modifiedAt")),
            mined=bool(data.get("mined", False)),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a JSON-safe dict (bytes as hex, datetimes as ISO-8601)."""
        return {
            "id": self.id,
            "type": self.type.value,
            "pics": [p.hex() for p in self.pics],
            "compressedPics": [p.hex() for p in self.compressed_pics],
            "order": list(self.order),
            "hint": self.hint.to_dict() if self.hint else None,
            "txHash": self.tx_hash,
            "deleteTxHash": self.delete_tx_hash,
            "hash": self.hash,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "modifiedAt": self.modified_at.isoformat() if self.modified_at else None,
            "mined": self.mined,
        }


@dataclass(frozen=True)
class SubmitFlipParams:
    """Caller's current view of a flip at submission time."""

    id: str
    pics: tuple[bytes, ...]
    compressed_pics: tuple[bytes, ...]
    order: tuple[int, ...]
    hint: Hint | None


def _parse_dt(value: str | None) -> datetime | None:
    return datetime.fromisoformat(value) if value else None


def draft_changes(draft: FlipRecord, names: Iterable[str] | None = None) -> list[str]:
    """Content fields of *draft* to merge into an existing draft.

    With *names* given, those of them that are content fields.  Otherwise
    every content field whose value differs from a fresh record's default.
    """
    if names is not None:
        wanted = set(names)
        return [name for name in DRAFT_FIELDS if name in wanted]
    defaults = {f.name: f.default for f in fields(FlipRecord)}
    return [name for name in DRAFT_FIELDS if getattr(draft, name) != defaults[name]]
