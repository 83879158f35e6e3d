"""FastAPI dependency injection helpers.

Usage in a route::

    @router.get("/flips")
    async def list_flips(
        flips: FlipLifecycleEngine = Depends(get_flips),
    ) -> ...:
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Request

from flip_manager.engine.client import FlipsEngine  # noqa: TC001
from flip_manager.engine.lifecycle import FlipLifecycleEngine  # noqa: TC001
from flip_manager.errors.flip_errors import FlipError

_ErrEngineUnavailable = FlipError(
    "engine not initialized", status_code=503, code="engine-unavailable"
)


def get_engine(request: Request) -> FlipsEngine:
    """Retrieve the engine from ``app.state``.

    The engine is stored on ``app.state.engine`` during lifespan startup.

    Raises:
        FlipError: If the engine is not initialized.
    """
    engine: FlipsEngine | None = getattr(request.app.state, "engine", None)
    if engine is None or not engine.is_initialized:
        raise _ErrEngineUnavailable
    return engine


def get_flips(
    engine: Annotated[FlipsEngine, Depends(get_engine)],
) -> FlipLifecycleEngine:
    """The flip lifecycle engine of the running app."""
    return engine.flips
