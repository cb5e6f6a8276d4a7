"""
Sightings Router - API endpoints for animal sightings

Endpoints:
  GET    /api/sightings                   - List active sightings (newest first)
  POST   /api/sightings                   - Report a sighting (JSON or multipart with photo)
  DELETE /api/sightings/expired           - Sweep expired sightings now
  GET    /api/sightings/{id}              - Get an active sighting
  POST   /api/sightings/{id}/refresh      - Mark a sighting as still here
  POST   /api/sightings/{id}/still-here   - Alias of /refresh
  WS     /ws/sightings                    - Push channel for created/refreshed sightings
"""

import io
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from fastapi import APIRouter, Depends, HTTPException, Query, Request, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from starlette.datastructures import UploadFile

from wildlife_tracker.config import Settings
from wildlife_tracker.context import AppContext
from wildlife_tracker.dependencies import get_context, get_settings, get_store
from wildlife_tracker.exceptions import SightingError, SightingValidationError
from wildlife_tracker.models import DeleteExpiredResponse, Sighting, SightingRead
from wildlife_tracker.services.r2_storage import (
    delete_image_file,
    get_image_url,
    upload_sighting_image,
    validate_image,
)
from wildlife_tracker.services.sighting_store import SightingStore

logger = logging.getLogger(__name__)

router = APIRouter()

ws_router = APIRouter()


def _to_payload(sighting: Sighting) -> Dict[str, Any]:
    """JSON-ready representation used for WebSocket pushes."""
    return SightingRead.from_sighting(sighting).model_dump(mode="json")


def _parse_sighting_json(raw: Any) -> Dict[str, Any]:
    """Parse the `sighting` form field of a multipart request."""
    if raw is None or isinstance(raw, UploadFile):
        raise SightingValidationError("Missing 'sighting' form field")
    try:
        data = json.loads(raw)
    except ValueError as e:
        raise SightingValidationError(f"'sighting' form field is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise SightingValidationError("'sighting' form field must be a JSON object")
    return data


async def _read_create_request(request: Request, settings: Settings) -> Tuple[Dict[str, Any], Optional[str]]:
    """
    Extract sighting fields (and upload the photo, if any) from a create request.

    Returns:
        Tuple of (sighting fields, R2 key of the uploaded photo or None)
    """
    content_type = request.headers.get("content-type", "")

    if content_type.startswith(("multipart/form-data", "application/x-www-form-urlencoded")):
        form = await request.form()
        data = _parse_sighting_json(form.get("sighting"))
        image = form.get("image")
        if not isinstance(image, UploadFile) or not image.filename:
            return data, None

        # Reject by declared size before buffering; the bounded read catches the rest
        if image.size is not None:
            validate_image(image.filename, image.size, settings)
        contents = await image.read(settings.max_image_bytes + 1)
        r2_key = await run_in_threadpool(
            upload_sighting_image, io.BytesIO(contents), image.filename, len(contents), settings
        )
        try:
            data["image_url"] = await run_in_threadpool(get_image_url, r2_key, settings)
        except Exception:
            await run_in_threadpool(delete_image_file, r2_key, settings)
            raise
        return data, r2_key

    try:
        data = await request.json()
    except ValueError as e:
        raise SightingValidationError("Request body must be valid JSON") from e
    if not isinstance(data, dict):
        raise SightingValidationError("Request body must be a JSON object")
    return data, None


@router.get("", response_model=List[SightingRead])
def list_sightings(
    limit: Optional[int] = Query(None, ge=1, description="Maximum number of sightings to return"),
    store: SightingStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
):
    """
    Get all active sightings, newest first.

    Sightings whose last activity is older than the expiry window are never
    returned, even if the sweeper has not removed them yet.
    """
    limit = min(limit or settings.default_list_limit, settings.max_list_limit)
    return [SightingRead.from_sighting(s) for s in store.list_active(limit=limit)]


@router.post("", response_model=SightingRead, status_code=status.HTTP_201_CREATED)
async def create_sighting(
    request: Request,
    store: SightingStore = Depends(get_store),
    context: AppContext = Depends(get_context),
):
    """
    Report a new sighting.

    Accepts either a JSON body or multipart/form-data with a `sighting`
    field (JSON string) and an optional `image` file.
    """
    settings = context.settings
    data, r2_key = await _read_create_request(request, settings)

    try:
        sighting = await run_in_threadpool(
            store.create,
            animal=data.get("animal"),
            is_baby=data.get("is_baby", False),
            location=data.get("location"),
            image_url=data.get("image_url"),
        )
    except SightingError:
        if r2_key:
            await run_in_threadpool(delete_image_file, r2_key, settings)
        raise
    except Exception:
        logger.exception("Error creating sighting")
        if r2_key:
            await run_in_threadpool(delete_image_file, r2_key, settings)
        raise HTTPException(status_code=500, detail="Error creating sighting")

    await context.broadcaster.broadcast("created", _to_payload(sighting))
    return SightingRead.from_sighting(sighting)


@router.delete("/expired", response_model=DeleteExpiredResponse)
def delete_expired_sightings(store: SightingStore = Depends(get_store)):
    """Remove every expired sighting now instead of waiting for the sweeper."""
    deleted = store.delete_expired()
    logger.info(f"Manual sweep removed {deleted} expired sightings")
    return {"deleted_count": deleted}


@router.get("/{sighting_id}", response_model=SightingRead)
def get_sighting(sighting_id: str, store: SightingStore = Depends(get_store)):
    """Get a specific active sighting by ID"""
    return SightingRead.from_sighting(store.get_active(sighting_id))


@router.post("/{sighting_id}/refresh", response_model=SightingRead)
@router.post("/{sighting_id}/still-here", response_model=SightingRead)
async def refresh_sighting(
    sighting_id: str,
    store: SightingStore = Depends(get_store),
    context: AppContext = Depends(get_context),
):
    """Reset the expiry timer of an active sighting ("still here")."""
    sighting = await run_in_threadpool(store.refresh, sighting_id)
    await context.broadcaster.broadcast("refreshed", _to_payload(sighting))
    return SightingRead.from_sighting(sighting)


@ws_router.websocket("/ws/sightings")
async def sightings_stream(websocket: WebSocket):
    """Push created/refreshed sightings to a connected map client."""
    broadcaster = websocket.app.state.context.broadcaster
    await broadcaster.connect(websocket)
    try:
        while True:
            message = await websocket.receive_text()
            if message.strip().lower() == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.disconnect(websocket)
