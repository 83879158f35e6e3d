"""V1 flip endpoints.

Draft CRUD, submission, deletion, archival and a manual reconciliation
trigger.  Errors surface through the app's ``FlipError`` handler.
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends

from flip_manager.api.dependencies import get_flips
from flip_manager.api.v1.schemas import (
    ArchiveResponse,
    DeleteFlipResponse,
    FlipResponse,
    ReconcileResponse,
    SaveDraftRequest,
    SubmitFlipRequest,
)
from flip_manager.engine.lifecycle import FlipLifecycleEngine  # noqa: TC001
from flip_manager.engine.records import FlipRecord, SubmitFlipParams
from flip_manager.errors.definitions import ErrFlipNotFound

router = APIRouter(tags=["flips"])


@router.get("/flips")
async def list_flips(
    flips: Annotated[FlipLifecycleEngine, Depends(get_flips)],
) -> list[dict]:
    """List every flip."""
    return [FlipResponse.from_record(f).model_dump(mode="json") for f in flips.list_flips()]


@router.get("/flips/{flip_id}")
async def get_flip(
    flip_id: str,
    flips: Annotated[FlipLifecycleEngine, Depends(get_flips)],
) -> dict:
    """Get a single flip by id."""
    flip = await flips.get_draft(flip_id)
    if flip is None:
        raise ErrFlipNotFound
    return FlipResponse.from_record(flip).model_dump(mode="json")


@router.put("/flips/drafts")
async def save_draft(
    body: SaveDraftRequest,
    flips: Annotated[FlipLifecycleEngine, Depends(get_flips)],
) -> dict:
    """Create or update a draft; only the fields sent are changed."""
    record = await flips.save_draft(
        FlipRecord(
            id=body.id,
            pics=body.pics_bytes(),
            compressed_pics=body.compressed_pics_bytes(),
            order=tuple(body.order),
            hint=body.hint.to_hint() if body.hint else None,
        ),
        fields=body.model_fields_set,
    )
    return FlipResponse.from_record(record).model_dump(mode="json")


@router.post("/flips/{flip_id}/submit", status_code=202)
async def submit_flip(
    flip_id: str,
    body: SubmitFlipRequest,
    flips: Annotated[FlipLifecycleEngine, Depends(get_flips)],
) -> dict:
    """Submit a flip; it stays ``publishing`` until its tx is mined."""
    record = await flips.submit_flip(
        SubmitFlipParams(
            id=flip_id,
            pics=body.pics_bytes(),
            compressed_pics=body.compressed_pics_bytes(),
            order=tuple(body.order),
            hint=body.hint.to_hint() if body.hint else None,
        )
    )
    return FlipResponse.from_record(record).model_dump(mode="json")


@router.delete("/flips/{flip_id}")
async def delete_flip(
    flip_id: str,
    flips: Annotated[FlipLifecycleEngine, Depends(get_flips)],
) -> dict:
    """Delete a flip (on chain if published, locally otherwise)."""
    record = await flips.delete_flip(flip_id)
    flip = FlipResponse.from_record(record) if record is not None else None
    return DeleteFlipResponse(flip=flip).model_dump(mode="json")


@router.post("/flips/reconcile")
async def reconcile_flips(
    flips: Annotated[FlipLifecycleEngine, Depends(get_flips)],
) -> dict:
    """Run one reconciliation pass now."""
    return ReconcileResponse(changed=await flips.reconcile()).model_dump()


@router.post("/epochs/{epoch}/archive")
async def archive_flips(
    epoch: int,
    flips: Annotated[FlipLifecycleEngine, Depends(get_flips)],
) -> dict:
    """Archive every flip for *epoch* (no-op if already done)."""
    archived = await flips.archive_flips(epoch)
    return ArchiveResponse(epoch=epoch, archived=archived).model_dump()
