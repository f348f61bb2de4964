"""Simple in-memory fan-out of slip store changes."""

from __future__ import annotations

import logging
from typing import Callable, Dict, List

LOGGER = logging.getLogger(__name__)

ChangeCallback = Callable[[str, str], None]


class ChangeFeed:
	"""Deliver `(event, image_id)` notifications to subscribers of a namespace."""

	def __init__(self) -> None:
		self._subscribers: Dict[str, List[ChangeCallback]] = {}

	def subscribe(self, namespace: str, callback: ChangeCallback) -> Callable[[], None]:
		"""Register a callback and return a function that removes it."""
		self._subscribers.setdefault(namespace, []).append(callback)

		def _unsubscribe() -> None:
			callbacks = self._subscribers.get(namespace, [])
			if callback in callbacks:
				callbacks.remove(callback)
			if not callbacks:
				self._subscribers.pop(namespace, None)

		return _unsubscribe

	def publish(self, namespace: str, event: str, image_id: str = "") -> None:
		"""Notify every subscriber of the namespace; a failing callback does not stop the others."""
		for callback in list(self._subscribers.get(namespace, [])):
			try:
				callback(event, image_id)
			except Exception:
				LOGGER.exception("Change subscriber failed for %s event on %s", event, namespace)

	def subscriber_count(self, namespace: str) -> int:
		return len(self._subscribers.get(namespace, []))
