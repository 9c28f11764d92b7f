"""History and favorites endpoints."""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, HTTPException, Request, status

from diabite.api.models import FavoriteRequest, HistoryPayload, ResolveResponse
from diabite.domain.food import DiabetesType  # noqa: TC001

if TYPE_CHECKING:
    from diabite.containers import AppContainer
    from diabite.domain.history import HistoryEntry

router = APIRouter(prefix="/history", tags=["history"])


def _payloads(
    container: AppContainer, entries: list[HistoryEntry]
) -> list[HistoryPayload]:
    service = container.history_service
    return [HistoryPayload.from_entry(entry, service.age_label(entry)) for entry in entries]


def _not_found(entry_id: int) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"History entry {entry_id} not found",
    )


@router.get("")
async def list_history(request: Request) -> dict[str, list[HistoryPayload]]:
    """Return history with favorites first, then most recent."""
    container: AppContainer = request.app.state.container
    return {"items": _payloads(container, container.history_service.list_all())}


@router.get("/favorites")
async def list_favorites(request: Request) -> dict[str, list[HistoryPayload]]:
    """Return favorite history rows, most recent first."""
    container: AppContainer = request.app.state.container
    return {"items": _payloads(container, container.history_service.list_favorites())}


@router.get("/lookup")
async def lookup_history(
    query: str, diabetes_type: DiabetesType, request: Request
) -> HistoryPayload:
    """Return the row recorded for a (query, diabetes type) pair."""
    container: AppContainer = request.app.state.container
    service = container.history_service
    entry = service.find(query, diabetes_type)
    if entry is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No history for '{query.strip()}' ({diabetes_type.value})",
        )
    return HistoryPayload.from_entry(entry, service.age_label(entry))


@router.post("/{entry_id}/favorite")
async def set_favorite(
    entry_id: int, body: FavoriteRequest, request: Request
) -> dict[str, object]:
    """Mark or unmark a history row as favorite."""
    container: AppContainer = request.app.state.container
    if not container.history_service.set_favorite(entry_id, body.is_favorite):
        raise _not_found(entry_id)
    return {"id": entry_id, "is_favorite": body.is_favorite}


@router.post("/{entry_id}/rerun")
async def rerun_entry(entry_id: int, request: Request) -> ResolveResponse:
    """Resolve a history row again with its stored diabetes type."""
    container: AppContainer = request.app.state.container
    entry = container.history_service.get(entry_id)
    if entry is None:
        raise _not_found(entry_id)
    result = await container.resolver.rerun(entry)
    return ResolveResponse.from_result(result)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT)
async def clear_history(request: Request) -> None:
    """Delete the whole history."""
    container: AppContainer = request.app.state.container
    container.history_service.clear()
