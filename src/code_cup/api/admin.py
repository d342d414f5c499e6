"""Admin API endpoints with simple token auth."""

from __future__ import annotations

from dataclasses import asdict
from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, Header, HTTPException, Request, status

from code_cup.api.admin_models import ImportRequest, LifecycleRequest
from code_cup.services.persistence import InvalidSnapshotError

if TYPE_CHECKING:
    from code_cup.containers import AppContainer

router = APIRouter(prefix="/admin", tags=["admin"])


def _get_admin_token(request: Request) -> str:
    container: AppContainer = request.app.state.container
    return container.settings.admin_token


async def require_admin(
    x_admin_token: str | None = Header(default=None),
    admin_token: str = Depends(_get_admin_token),
) -> None:
    """Ensure requests include a valid admin token."""
    if not x_admin_token or x_admin_token != admin_token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED)


@router.get("/health", dependencies=[Depends(require_admin)])
async def admin_health() -> dict[str, str]:
    """Admin health check endpoint."""
    return {"status": "ok"}


@router.get("/storage", dependencies=[Depends(require_admin)])
async def storage_status(request: Request) -> dict[str, object]:
    """Return the active storage medium and availability."""
    container: AppContainer = request.app.state.container
    return asdict(container.storage.status())


@router.post("/storage/retest", dependencies=[Depends(require_admin)])
async def storage_retest(request: Request) -> dict[str, object]:
    """Probe the persistent backend again."""
    container: AppContainer = request.app.state.container
    available = await container.storage.retest()
    return {"retest_successful": available, **asdict(container.storage.status())}


@router.get("/storage/health", dependencies=[Depends(require_admin)])
async def storage_health(request: Request) -> dict[str, object]:
    """Return storage health, retesting when running on memory."""
    container: AppContainer = request.app.state.container
    return await container.storage.health()


@router.get("/storage/diagnostics", dependencies=[Depends(require_admin)])
async def storage_diagnostics(request: Request) -> dict[str, object]:
    """Run backend self-tests."""
    container: AppContainer = request.app.state.container
    report = await container.storage.diagnose()
    return asdict(report)


@router.get("/summary", dependencies=[Depends(require_admin)])
async def data_summary(request: Request) -> dict[str, object]:
    """Return headline numbers about the user data."""
    container: AppContainer = request.app.state.container
    return container.app_store.data_summary()


@router.post("/save", dependencies=[Depends(require_admin)])
async def save_state(request: Request) -> dict[str, bool]:
    """Save the whole app state now."""
    container: AppContainer = request.app.state.container
    return {"saved": await container.app_store.save_app_state()}


@router.get("/export", dependencies=[Depends(require_admin)])
async def export_data(request: Request) -> dict[str, str]:
    """Return a JSON backup of the stored data."""
    container: AppContainer = request.app.state.container
    exported = await container.app_store.export_user_data()
    if exported is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to export data",
        )
    return {"data": exported}


@router.post("/import", dependencies=[Depends(require_admin)])
async def import_data(payload: ImportRequest, request: Request) -> dict[str, bool]:
    """Restore a backup produced by the export endpoint."""
    container: AppContainer = request.app.state.container
    try:
        imported = await container.app_store.import_user_data(payload.data)
    except InvalidSnapshotError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return {"imported": imported}


@router.post("/lifecycle", dependencies=[Depends(require_admin)])
async def lifecycle(payload: LifecycleRequest, request: Request) -> dict[str, object]:
    """Apply an app foreground/background transition."""
    container: AppContainer = request.app.state.container
    await container.background_sync.handle_app_state_change(payload.state)
    return {
        "state": container.background_sync.app_state,
        "auto_save": container.background_sync.is_running,
    }


@router.post("/reset", dependencies=[Depends(require_admin)])
async def reset_data(request: Request) -> dict[str, str]:
    """Wipe stored data and reset the in-memory state."""
    container: AppContainer = request.app.state.container
    await container.app_store.clear_all_data()
    return {"status": "cleared"}
