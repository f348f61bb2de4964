"""Batch domain models for the extraction orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

from models.errors import ErrorKind
from models.extraction_result import ExtractionResult


@dataclass
class BatchError:
	"""A per-image failure collected during a batch run."""

	image_id: str
	kind: ErrorKind
	message: str

	def to_dict(self) -> dict:
		return {"image_id": self.image_id, "kind": self.kind.value, "message": self.message}


@dataclass
class BatchResult:
	"""Ordered results and errors produced by one batch run."""

	results: List[ExtractionResult] = field(default_factory=list)
	errors: List[BatchError] = field(default_factory=list)
	extracted_count: int = 0
	skipped_count: int = 0

	@property
	def last_error(self) -> Optional[str]:
		"""Most recent error message, for clients that show a single status line."""
		return self.errors[-1].message if self.errors else None
