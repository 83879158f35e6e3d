"""V1 API request/response Pydantic schemas.

These are the *API-layer* schemas that define the HTTP contract.  The
endpoint code maps between :class:`FlipRecord` and these schemas.  Images
travel as hex strings.
"""

from __future__ import annotations

from datetime import datetime  # noqa: TC003 - Pydantic needs this at runtime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator

from flip_manager.engine.records import DEFAULT_ORDER, Hint

if TYPE_CHECKING:
    from flip_manager.engine.records import FlipRecord


class ErrorResponse(BaseModel):
    """Standard error body: ``{"code": "...", "message": "..."}``."""

    code: str
    message: str


# ---------------------------------------------------------------------------
# Flip content
# ---------------------------------------------------------------------------


class HintSchema(BaseModel):
    """Keyword pair."""

    id: int
    words: list[str] = Field(default_factory=list)

    def to_hint(self) -> Hint:
        return Hint(id=self.id, words=tuple(self.words))


class FlipContent(BaseModel):
    """Images, order and hint shared by draft and submit requests."""

    pics: list[str] = Field(default_factory=list)
    compressed_pics: list[str] = Field(default_factory=list)
    order: list[int] = Field(default_factory=lambda: list(DEFAULT_ORDER))
    hint: HintSchema | None = None

    @field_validator("pics", "compressed_pics")
    @classmethod
    def _check_hex(cls, values: list[str]) -> list[str]:
        for value in values:
            bytes.fromhex(value)
        return values

    def pics_bytes(self) -> tuple[bytes, ...]:
        return tuple(bytes.fromhex(p) for p in self.pics)

    def compressed_pics_bytes(self) -> tuple[bytes, ...]:
        return tuple(bytes.fromhex(p) for p in self.compressed_pics)


class SaveDraftRequest(FlipContent):
    """PUT /api/v1/flips/drafts — create a draft or update the fields sent."""

    id: str = ""


class SubmitFlipRequest(FlipContent):
    """POST /api/v1/flips/{id}/submit — submit the caller's current view."""


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------


class FlipResponse(BaseModel):
    """Serialised flip for API responses."""

    id: str
    type: str
    pics: list[str] = Field(default_factory=list)
    compressed_pics: list[str] = Field(default_factory=list)
    order: list[int] = Field(default_factory=list)
    hint: HintSchema | None = None
    tx_hash: str | None = None
    delete_tx_hash: str | None = None
    hash: str | None = None
    mined: bool = False
    created_at: datetime | None = None
    modified_at: datetime | None = None

    @classmethod
    def from_record(cls, record: FlipRecord) -> FlipResponse:
        return cls(
            id=record.id,
            type=record.type.value,
            pics=[p.hex() for p in record.pics],
            compressed_pics=[p.hex() for p in record.compressed_pics],
            order=list(record.order),
            hint=HintSchema(id=record.hint.id, words=list(record.hint.words))
            if record.hint
            else None,
            tx_hash=record.tx_hash,
            delete_tx_hash=record.delete_tx_hash,
            hash=record.hash,
            mined=record.mined,
            created_at=record.created_at,
            modified_at=record.modified_at,
        )


class DeleteFlipResponse(BaseModel):
    """Result of a delete: the ``deleting`` flip, or null if removed locally."""

    flip: FlipResponse | None = None


class ArchiveResponse(BaseModel):
    epoch: int
    archived: bool


class ReconcileResponse(BaseModel):
    changed: int
