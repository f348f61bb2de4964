"""FastAPI routes for slip ingestion, extraction, dashboard and export."""

from typing import List, Optional

from fastapi import APIRouter, File, Header, HTTPException, Query, Request, UploadFile

from controllers.slip_controller import (
    clear_slips,
    delete_slip,
    export_csv,
    extract_slips,
    get_dashboard,
    get_slip_image,
    list_slips,
    to_http_exception,
    upload_slips,
)
from models.errors import SlipProcessingError

router = APIRouter(prefix="/api/slips", tags=["slips"])


async def _call(handler, *args, **kwargs):
    """Run a controller and map its failures onto HTTP errors."""
    try:
        return await handler(*args, **kwargs)
    except HTTPException:
        raise
    except SlipProcessingError as exc:
        raise to_http_exception(exc) from exc
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@router.post("", summary="Upload one or more slip images")
async def upload_slips_route(
    request: Request,
    files: List[UploadFile] = File(...),
    x_user_id: Optional[str] = Header(None),
):
    return await _call(upload_slips, request, x_user_id, files)


@router.get("", summary="List slip images and extraction results")
async def list_slips_route(request: Request, q: str = "", x_user_id: Optional[str] = Header(None)):
    return await _call(list_slips, request, x_user_id, q)


@router.delete("", summary="Delete every slip of the caller")
async def clear_slips_route(request: Request, x_user_id: Optional[str] = Header(None)):
    return await _call(clear_slips, request, x_user_id)


@router.post("/extract", summary="Extract fields for every slip without a result")
async def extract_slips_route(request: Request, x_user_id: Optional[str] = Header(None)):
    return await _call(extract_slips, request, x_user_id)


@router.get("/dashboard", summary="Summary statistics over extracted slips")
async def dashboard_route(
    request: Request,
    top: int = Query(5, ge=1, le=100),
    x_user_id: Optional[str] = Header(None),
):
    return await _call(get_dashboard, request, x_user_id, top)


@router.get("/export", summary="Download extracted slips as CSV")
async def export_route(request: Request, x_user_id: Optional[str] = Header(None)):
    return await _call(export_csv, request, x_user_id)


@router.get("/{image_id}/image", summary="Return the stored slip image")
async def slip_image_route(request: Request, image_id: str, x_user_id: Optional[str] = Header(None)):
    return await _call(get_slip_image, request, x_user_id, image_id)


@router.delete("/{image_id}", summary="Delete one slip image and its result")
async def delete_slip_route(request: Request, image_id: str, x_user_id: Optional[str] = Header(None)):
    return await _call(delete_slip, request, x_user_id, image_id)
