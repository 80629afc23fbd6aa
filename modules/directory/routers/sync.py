"""
Directory Sync API Router.

Manual triggers for the sync engine. Every endpoint returns the SyncResult of
the operation it ran; failed operations answer 502 with the same body.
"""

import logging
from typing import Annotated, Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from core.sync_manager import SyncResult, get_sync_manager
from modules.directory.services.errors import RecordNotFoundError
from modules.directory.services.mappers import EntityKind, parse_kind
from modules.directory.services.reseed import ReseedEngine, is_development_context
from modules.directory.services.sync_engine import SyncEngine

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sync", tags=["Directory Sync"])


# =============================================================================
# Dependencies
# =============================================================================


def get_directory_module(request: Request) -> Any:
    """The loaded directory module, looked up in the app registry."""
    registry = getattr(request.app.state, "registry", None)
    module = registry.get_module("directory") if registry is not None else None
    if module is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Directory module is not loaded",
        )
    return module


def get_sync_engine(module: Annotated[Any, Depends(get_directory_module)]) -> SyncEngine:
    """SyncEngine wired by the directory module at startup."""
    engine = module.engine
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Directory sync engine is not initialized",
        )
    return engine


def get_reseed_engine(module: Annotated[Any, Depends(get_directory_module)]) -> ReseedEngine:
    reseed = module.reseed
    if reseed is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Directory reseed engine is not initialized",
        )
    return reseed


def get_entity_kind(collection: str) -> EntityKind:
    """Path segment -> EntityKind, 404 for unknown collections."""
    kind = parse_kind(collection)
    if kind is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown collection: {collection}",
        )
    return kind


ModuleDep = Annotated[Any, Depends(get_directory_module)]
EngineDep = Annotated[SyncEngine, Depends(get_sync_engine)]
ReseedDep = Annotated[ReseedEngine, Depends(get_reseed_engine)]
KindDep = Annotated[EntityKind, Depends(get_entity_kind)]


def _respond(result: SyncResult) -> Any:
    body = result.to_dict()
    if result.succeeded:
        return body
    if result.error_kind == RecordNotFoundError.__name__:
        return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content=body)
    return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=body)


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/status")
async def sync_status() -> Dict[str, Any]:
    """Registered directory sync services with their last results."""
    services = [
        info for info in get_sync_manager().list_services()
        if info["module"] == "directory"
    ]
    return {"services": services}


@router.post("/employees/clear-contacts")
async def clear_contacts(engine: EngineDep) -> Any:
    """Reset every employee to name and region, then push them all."""
    return _respond(await engine.clear_employee_contacts())


@router.post("/reset")
async def reset(reseed: ReseedDep, module: ModuleDep) -> Dict[str, Any]:
    """Wipe and reseed local and remote data (development only)."""
    if not is_development_context(module.settings):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Reset is only available in development",
        )

    logger.warning("Full reset requested via API")
    report = await reseed.perform_full_reset()
    if not report.succeeded:
        return JSONResponse(status_code=status.HTTP_502_BAD_GATEWAY, content=report.to_dict())
    return report.to_dict()


@router.post("/{collection}/push")
async def push_all(kind: KindDep, engine: EngineDep) -> Any:
    return _respond(await engine.push_all(kind))


@router.post("/{collection}/pull")
async def pull_all(kind: KindDep, engine: EngineDep) -> Any:
    return _respond(await engine.pull_all(kind))


@router.post("/{collection}/dedupe")
async def remove_duplicates(kind: KindDep, engine: EngineDep) -> Any:
    """Delete remote documents sharing a normalized name."""
    return _respond(await engine.remove_remote_duplicates(kind))


@router.post("/{collection}/{row_id}/push")
async def push_one(kind: KindDep, row_id: int, engine: EngineDep) -> Any:
    return _respond(await engine.push_one(kind, row_id))


@router.delete("/{collection}/{row_id}")
async def delete_record(kind: KindDep, row_id: int, engine: EngineDep) -> Any:
    """Delete remotely (document, then photo), then locally."""
    return _respond(await engine.delete(kind, row_id))
