"""WebSocket endpoint pushing slip store changes to a connected client."""

from __future__ import annotations

import asyncio
import json
from typing import Optional

from fastapi import APIRouter, Query, WebSocket
from starlette.websockets import WebSocketDisconnect

from controllers.slip_controller import require_dal, slip_snapshot
from models.errors import SlipProcessingError

router = APIRouter()


def offer_latest(changes: asyncio.Queue, item) -> None:
	"""Queue `item`, replacing any change the socket has not sent yet.

	Pushes carry a full snapshot; at most the newest pending event is kept.
	"""
	if changes.full():
		changes.get_nowait()
	changes.put_nowait(item)


async def _drain(websocket: WebSocket) -> None:
	"""Consume inbound frames until the client disconnects."""
	while True:
		try:
			await websocket.receive_text()
		except WebSocketDisconnect:
			return


@router.websocket("/ws/slips")
async def slips_socket(websocket: WebSocket, user_id: Optional[str] = Query(None, alias="userId")):
	"""Send a snapshot on connect and again after every change in the caller's namespace."""
	await websocket.accept()
	changes: asyncio.Queue = asyncio.Queue(maxsize=1)
	try:
		dal = require_dal(websocket, user_id)
		unsubscribe = dal.subscribe(lambda event, image_id: offer_latest(changes, (event, image_id)))
	except (SlipProcessingError, RuntimeError) as exc:
		await websocket.send_text(json.dumps({"type": "error", "detail": str(exc)}))
		await websocket.close()
		return

	receiver = asyncio.create_task(_drain(websocket))
	try:
		await websocket.send_text(json.dumps({"type": "slips.snapshot", **await slip_snapshot(dal)}))
		while not receiver.done():
			getter = asyncio.create_task(changes.get())
			done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
			if getter not in done:
				getter.cancel()
				break
			event, image_id = getter.result()
			payload = {"type": "slips.changed", "event": event, "image_id": image_id, **await slip_snapshot(dal)}
			await websocket.send_text(json.dumps(payload))
	except (WebSocketDisconnect, RuntimeError):
		pass
	finally:
		unsubscribe()
		receiver.cancel()
