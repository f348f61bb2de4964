"""Per-image extraction state machine for a batch of slip images.

For each image, in input order: reuse an existing result if there is one,
otherwise call the extractor, normalize the amount, write the result back to
the store and accumulate it. Failures are collected per image and never stop
the batch.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Dict, Mapping, Optional, Protocol, Sequence

from models.batch_models import BatchError, BatchResult
from models.errors import ErrorKind, PersistenceFailure, SlipProcessingError
from models.extraction_result import ExtractionResult
from models.image_record import ImageAsset
from services.normalizer import parse_amount

LOGGER = logging.getLogger(__name__)


class Extractor(Protocol):
    async def extract(self, image_bytes: bytes, mime_type: str = ...) -> Dict[str, Optional[str]]: ...


class ResultStore(Protocol):
    async def save_extraction(self, result: ExtractionResult) -> None: ...


def build_extraction_result(image_id: str, fields: Mapping[str, Optional[str]]) -> ExtractionResult:
    """Attach the normalized amount to raw extracted fields."""
    return ExtractionResult(
        image_id=image_id,
        fields=dict(fields),
        parsed_amount=parse_amount(fields.get("amount")),
    )


class ExtractionOrchestrator:
    """Drive extraction for a batch of images, one at a time."""

    def __init__(self, extractor: Extractor, store: ResultStore, persist_delay: float = 0.1) -> None:
        """
        Args:
            extractor: Object with an async `extract(image_bytes, mime_type)` returning slip fields.
            store: Store adapter exposing async `save_extraction(result)`.
            persist_delay: Seconds to pause after each successful store write.
        """
        if extractor is None:
            raise ValueError("An extractor is required.")
        if store is None:
            raise ValueError("A result store is required.")
        self.extractor = extractor
        self.store = store
        self.persist_delay = persist_delay

    async def process_batch(
        self,
        images: Sequence[ImageAsset],
        existing_results: Mapping[str, ExtractionResult],
    ) -> BatchResult:
        """Extract every image that has no result yet.

        Args:
            images: Images in the order results should be returned.
            existing_results: Results already persisted, keyed by image id.

        Returns:
            BatchResult with results in input order (carried-forward ones included)
            and one BatchError per failing image.
        """
        batch = BatchResult()
        for image in images:
            prior = existing_results.get(image.id)
            if prior is not None:
                batch.results.append(prior)
                batch.skipped_count += 1
                continue

            result = await self._extract_one(image, batch)
            if result is None:
                continue

            await self._persist(result, batch)
            batch.results.append(result)
            batch.extracted_count += 1

        LOGGER.info(
            "Batch finished: %d images, %d extracted, %d skipped, %d errors",
            len(images),
            batch.extracted_count,
            batch.skipped_count,
            len(batch.errors),
        )
        return batch

    async def _extract_one(self, image: ImageAsset, batch: BatchResult) -> Optional[ExtractionResult]:
        try:
            fields = await self.extractor.extract(image.image_bytes, image.mime_type)
        except SlipProcessingError as exc:
            LOGGER.warning("Extraction failed for image %s (%s): %s", image.id, exc.kind.value, exc)
            batch.errors.append(BatchError(image.id, exc.kind, str(exc)))
            return None
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.exception("Unexpected extraction error for image %s", image.id)
            batch.errors.append(BatchError(image.id, ErrorKind.TRANSPORT_FAILURE, str(exc)))
            return None
        return build_extraction_result(image.id, fields)

    async def _persist(self, result: ExtractionResult, batch: BatchResult) -> None:
        try:
            await self.store.save_extraction(result)
        except PersistenceFailure as exc:
            LOGGER.error("Could not persist extraction for image %s: %s", result.image_id, exc)
            batch.errors.append(BatchError(result.image_id, exc.kind, str(exc)))
            return
        except Exception as exc:  # pylint: disable=broad-exception-caught
            LOGGER.exception("Unexpected store error for image %s", result.image_id)
            batch.errors.append(BatchError(result.image_id, ErrorKind.PERSISTENCE_FAILURE, str(exc)))
            return
        await asyncio.sleep(self.persist_delay)
