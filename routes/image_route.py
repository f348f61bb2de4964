from typing import Optional

from fastapi import APIRouter, HTTPException, Query, Request

from controllers.slip_controller import get_slip_image, to_http_exception
from models.errors import SlipProcessingError

router = APIRouter()


@router.get("/image_viewer")
async def image_viewer(
	request: Request,
	image_id: str = Query(..., alias="imageId"),
	app_id: Optional[str] = Query(None, alias="appId"),
	user_id: Optional[str] = Query(None, alias="userId"),
):
	"""Return the slip image referenced by an exported 'View Image URL'."""
	try:
		return await get_slip_image(request, user_id, image_id, app_id)
	except HTTPException:
		raise
	except SlipProcessingError as exc:
		raise to_http_exception(exc) from exc
	except Exception as exc:
		raise HTTPException(status_code=500, detail=str(exc))
