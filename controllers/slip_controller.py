"""Controllers for slip upload, extraction, dashboard and export."""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any, Dict, List, Optional

from fastapi import HTTPException, UploadFile
from fastapi.responses import Response
from starlette.requests import HTTPConnection

from dal.slip_dal import SlipDAL, namespace_for
from models.errors import (
    ErrorKind,
    PersistenceFailure,
    SlipProcessingError,
    StoreUnavailable,
    UnauthenticatedCaller,
    UnsupportedInput,
)
from models.image_record import ImageAsset
from services import aggregation
from services.orchestrator import ExtractionOrchestrator
from utils.app_config import AppConfig
from utils.media_validation import read_image_upload

LOGGER = logging.getLogger(__name__)

STATUS_BY_KIND = {
    ErrorKind.STORE_UNAVAILABLE: 503,
    ErrorKind.UNAUTHENTICATED_CALLER: 401,
    ErrorKind.UNSUPPORTED_INPUT: 415,
    ErrorKind.TRANSPORT_FAILURE: 502,
    ErrorKind.MALFORMED_RESPONSE: 502,
    ErrorKind.PERSISTENCE_FAILURE: 500,
}


def to_http_exception(exc: SlipProcessingError) -> HTTPException:
    """Translate a service error into an HTTPException carrying its kind."""
    return HTTPException(
        status_code=STATUS_BY_KIND.get(exc.kind, 500),
        detail={"kind": exc.kind.value, "message": str(exc)},
    )


def get_config(conn: HTTPConnection) -> AppConfig:
    return getattr(conn.app.state, "config", None) or AppConfig()


def require_dal(conn: HTTPConnection, user_id: Optional[str], app_id: Optional[str] = None) -> SlipDAL:
    """Pre-flight checks shared by every slip operation.

    Raises:
        StoreUnavailable: If the database has not been initialized.
        UnauthenticatedCaller: If no caller identity was supplied.
    """
    db_initializer = getattr(conn.app.state, "db_initializer", None)
    if db_initializer is None:
        raise StoreUnavailable("Slip store is not initialized.")
    if not user_id or not user_id.strip():
        raise UnauthenticatedCaller("A caller identity (X-User-Id) is required.")
    namespace = namespace_for(app_id or get_config(conn).app_id, user_id.strip())
    return SlipDAL(db_initializer, namespace, getattr(conn.app.state, "change_feed", None))


async def slip_snapshot(dal: SlipDAL, query: str = "") -> Dict[str, Any]:
    """Return ordered image summaries and (optionally filtered) extraction results."""
    records = await dal.list_all()
    results = [record.extraction for record in records if record.extraction is not None]
    return {
        "images": [record.summary() for record in records],
        "results": [item.to_dict() for item in aggregation.filter_by_search(results, query)],
    }


async def upload_slips(conn: HTTPConnection, user_id: Optional[str], files: List[UploadFile]) -> Dict[str, Any]:
    """Validate and store uploaded slip images; non-image files are skipped and reported.

    Args:
        conn: Request (used to access app.state for shared clients).
        user_id: Caller identity.
        files: Uploaded files, stored in the order received.

    Returns:
        A dict containing the created image summaries, per-file errors and the last error message.
    """
    dal = require_dal(conn, user_id)
    config = get_config(conn)

    created: List[Dict[str, Any]] = []
    errors: List[Dict[str, str]] = []
    for upload in files:
        name = upload.filename or "upload"
        try:
            image_bytes, mime_type = await read_image_upload(upload, max_bytes=config.max_image_bytes)
            asset = await dal.create_asset(
                ImageAsset(id=uuid.uuid4().hex, image_bytes=image_bytes, mime_type=mime_type, filename=name)
            )
        except (UnsupportedInput, PersistenceFailure) as exc:
            LOGGER.warning("Skipping upload %s (%s): %s", name, exc.kind.value, exc)
            errors.append({"filename": name, "kind": exc.kind.value, "message": str(exc)})
            continue
        created.append({"id": asset.id, "filename": asset.filename, "created_at": asset.created_at})
        await asyncio.sleep(config.persist_delay_seconds)

    return {
        "created": created,
        "errors": errors,
        "last_error": errors[-1]["message"] if errors else None,
    }


async def list_slips(conn: HTTPConnection, user_id: Optional[str], query: str = "") -> Dict[str, Any]:
    return await slip_snapshot(require_dal(conn, user_id), query)


async def delete_slip(conn: HTTPConnection, user_id: Optional[str], image_id: str) -> Dict[str, Any]:
    """Delete one slip image together with its extraction result."""
    dal = require_dal(conn, user_id)
    if not await dal.delete(image_id):
        raise HTTPException(status_code=404, detail="Image not found")
    return {"id": image_id, "deleted": True}


async def clear_slips(conn: HTTPConnection, user_id: Optional[str]) -> Dict[str, Any]:
    dal = require_dal(conn, user_id)
    removed = await dal.clear()
    return {"deleted": removed}


async def extract_slips(conn: HTTPConnection, user_id: Optional[str]) -> Dict[str, Any]:
    """Run one extraction batch over every stored image of the caller.

    The store snapshot taken here decides which images already have results;
    only the gaps are sent to the extraction model.

    Returns:
        A dict with ordered results, per-image errors, counts and the last error message.
    """
    dal = require_dal(conn, user_id)
    extractor = getattr(conn.app.state, "slip_extractor", None)
    if extractor is None:
        raise HTTPException(status_code=503, detail="Extraction client not initialized.")

    images, existing = await dal.snapshot()
    if not images:
        raise HTTPException(status_code=400, detail="Upload slip images before extracting.")

    orchestrator = ExtractionOrchestrator(extractor, dal, persist_delay=get_config(conn).persist_delay_seconds)
    batch = await orchestrator.process_batch(images, existing)

    return {
        "results": [item.to_dict() for item in batch.results],
        "errors": [error.to_dict() for error in batch.errors],
        "extracted_count": batch.extracted_count,
        "skipped_count": batch.skipped_count,
        "last_error": batch.last_error,
    }


async def get_dashboard(conn: HTTPConnection, user_id: Optional[str], top_limit: int = 5) -> Dict[str, Any]:
    dal = require_dal(conn, user_id)
    records = await dal.list_all()
    results = [record.extraction for record in records if record.extraction is not None]
    return aggregation.dashboard_summary(results, top_limit=top_limit)


async def export_csv(conn: HTTPConnection, user_id: Optional[str]) -> Response:
    """Return every extraction result as a downloadable CSV with a UTF-8 BOM."""
    dal = require_dal(conn, user_id)
    config = get_config(conn)
    records = await dal.list_all()
    results = [record.extraction for record in records if record.extraction is not None]

    template = aggregation.build_viewer_url_template(config.viewer_base_url, config.app_id, user_id.strip())
    document = aggregation.to_export_document(results, template)
    return Response(
        content=aggregation.encode_export_document(document),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{aggregation.EXPORT_FILENAME}"'},
    )


async def get_slip_image(
    conn: HTTPConnection, user_id: Optional[str], image_id: str, app_id: Optional[str] = None
) -> Response:
    """Return the stored image bytes for `image_id`.

    Raises:
        HTTPException(404) if the image is not found.
    """
    dal = require_dal(conn, user_id, app_id)
    record = await dal.get(image_id)
    if record is None or not record.asset.image_bytes:
        raise HTTPException(status_code=404, detail="Image not found")
    return Response(content=record.asset.image_bytes, media_type=record.asset.mime_type)
