from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from models.extraction_result import ExtractionResult


@dataclass(frozen=True)
class ImageAsset:
    """In-memory representation of an uploaded slip image.

    Attributes:
        id: Opaque unique identifier (uuid4 hex); join key to the extraction result.
        image_bytes: Raw image payload as uploaded.
        mime_type: Content type of the payload (e.g., image/png).
        filename: Original filename reported by the client, if any.
        created_at: Unix timestamp in milliseconds; strictly increasing per process.
    """

    id: str
    image_bytes: bytes
    mime_type: str = "image/jpeg"
    filename: Optional[str] = None
    created_at: int = 0


@dataclass
class SlipRecord:
    """One stored row: the image asset plus its extraction result, if any."""

    asset: ImageAsset
    extraction: Optional[ExtractionResult] = None

    @property
    def id(self) -> str:
        return self.asset.id

    def summary(self) -> dict:
        """Return a JSON-friendly view without the image payload."""
        return {
            "id": self.asset.id,
            "filename": self.asset.filename,
            "mime_type": self.asset.mime_type,
            "created_at": self.asset.created_at,
            "extracted": self.extraction is not None,
        }
