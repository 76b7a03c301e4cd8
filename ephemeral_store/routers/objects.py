"""
Objects Router

Save raw payloads per owner and type, list them page by page, and fetch
single objects back by id until they expire.
"""

from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool
import structlog

from ephemeral_store.dependencies import get_entry_service
from ephemeral_store.services.entries import EntryService, EntryPage, SavedEntry
from ephemeral_store.services.exceptions import PayloadTooLarge

logger = structlog.get_logger(__name__)

router = APIRouter(tags=["objects"])


def to_iso(epoch_millis: int) -> str:
    """Epoch milliseconds -> 2024-01-15T12:30:45.000Z"""
    moment = datetime.fromtimestamp(epoch_millis / 1000, tz=timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def saved_response(saved: SavedEntry) -> dict:
    return {
        "success": True,
        "message": "Object stored successfully",
        "type": saved.category,
        "userId": saved.owner_key,
        "objectId": saved.external_id,
        "size": saved.size_bytes,
        "expiresAt": to_iso(saved.expires_at),
    }


def page_response(entry_page: EntryPage) -> dict:
    return {
        "type": entry_page.category,
        "userId": entry_page.owner_key,
        "objects": [
            {
                "objectId": item.external_id,
                "size": item.size_bytes,
                "createdAt": to_iso(item.created_at),
                "expiresAt": to_iso(item.expires_at),
            }
            for item in entry_page.items
        ],
        "pagination": {
            "page": entry_page.page,
            "limit": entry_page.page_size,
            "totalObjects": entry_page.total_count,
            "totalPages": entry_page.total_pages,
            "hasNextPage": entry_page.has_next,
            "hasPrevPage": entry_page.has_prev,
        },
    }


async def read_limited_body(request: Request, max_bytes: int) -> bytes:
    """
    Read the request body, stopping as soon as it passes max_bytes.

    A declared Content-Length over the limit is refused before any of the
    body is read.

    Raises:
        PayloadTooLarge: Declared or received size exceeds max_bytes
    """
    declared = request.headers.get("content-length")
    if declared is not None and declared.isdigit() and int(declared) > max_bytes:
        raise PayloadTooLarge(
            f"Payload of {declared} bytes exceeds limit of {max_bytes} bytes"
        )

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise PayloadTooLarge(f"Payload exceeds limit of {max_bytes} bytes")
    return bytes(body)


async def _save(
    request: Request,
    category: str,
    owner_id: str,
    object_id: Optional[str],
    service: EntryService,
) -> dict:
    payload = await read_limited_body(request, service.max_payload_bytes)

    saved = await run_in_threadpool(
        service.save,
        owner_id,
        category,
        payload,
        object_id,
    )
    logger.info(
        "object_saved",
        category=saved.category,
        object_id=saved.external_id,
        size=saved.size_bytes
    )
    return saved_response(saved)


@router.post("/save/{category}/{owner_id}", status_code=201)
async def save_object(
    category: str,
    owner_id: str,
    request: Request,
    service: EntryService = Depends(get_entry_service)
):
    """
    Save the raw request body under a content-derived object id.

    Saving identical bytes for the same owner again refreshes the existing
    object instead of creating a second one.
    """
    return await _save(request, category, owner_id, None, service)


@router.post("/save/{category}/{owner_id}/{object_id}", status_code=201)
async def save_object_with_id(
    category: str,
    owner_id: str,
    object_id: str,
    request: Request,
    service: EntryService = Depends(get_entry_service)
):
    """
    Save the raw request body under a caller-chosen object id.

    An existing object with the same id is replaced and its expiry restarts.
    A live id held by another owner is refused with 409.
    """
    return await _save(request, category, owner_id, object_id, service)


@router.get("/fetch/{category}/{owner_id}")
async def list_objects(
    category: str,
    owner_id: str,
    page: Optional[str] = Query(None, description="1-based page number"),
    service: EntryService = Depends(get_entry_service)
):
    """
    List live objects of an owner and type, newest first.

    Pages past the end return an empty object list, not an error.
    """
    entry_page = await run_in_threadpool(service.list_entries, owner_id, category, page)
    return page_response(entry_page)


@router.get("/object/{object_id}")
async def get_object(
    object_id: str,
    service: EntryService = Depends(get_entry_service)
):
    """
    Return the raw bytes of a live object.

    Raises:
        404: Object missing or expired
    """
    entry = await run_in_threadpool(service.fetch, object_id)
    return Response(content=entry.payload, media_type="application/octet-stream")
