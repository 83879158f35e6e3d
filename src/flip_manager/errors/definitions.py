"""Pre-defined flip lifecycle errors."""

from __future__ import annotations

from flip_manager.errors.flip_errors import FlipError

# -- Submission validation -------------------------------------------------

ErrDuplicateSubmission = FlipError(
    "You already submitted this flip", status_code=409, code="duplicate-submission"
)
ErrUnshuffledOrder = FlipError(
    "You must shuffle flip before submit", status_code=400, code="unshuffled-order"
)
ErrMissingHint = FlipError(
    "Keywords for flip are not specified", status_code=400, code="missing-hint"
)
ErrInvalidHint = FlipError(
    "Keywords for flip are not allowed", status_code=400, code="invalid-hint"
)
ErrInvalidOrder = FlipError(
    "Flip order must be a permutation of its images", status_code=400, code="invalid-order"
)
ErrPayloadTooLarge = FlipError("Flip is too large", status_code=413, code="payload-too-large")

# -- Not Found -------------------------------------------------------------

ErrFlipNotFound = FlipError("flip not found", status_code=404, code="flip-not-found")

# -- State -----------------------------------------------------------------

ErrFlipNotDraft = FlipError(
    "flip is not a draft", status_code=409, code="flip-not-draft"
)
ErrInvalidTransition = FlipError(
    "invalid flip state transition", status_code=409, code="invalid-transition"
)
ErrOperationInProgress = FlipError(
    "another operation on this flip is in progress",
    status_code=409,
    code="operation-in-progress",
)
