from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple

# Field order matches the extraction schema sent to the model and the export columns.
REQUIRED_FIELDS: Tuple[str, ...] = (
    "sender_name",
    "recipient_name",
    "amount",
    "transaction_date",
    "transaction_time",
)
OPTIONAL_FIELDS: Tuple[str, ...] = (
    "transaction_id",
    "sender_bank_name",
    "sender_bank_account_number",
    "recipient_bank_name",
    "recipient_bank_account_number",
    "country",
)
SLIP_FIELDS: Tuple[str, ...] = REQUIRED_FIELDS + OPTIONAL_FIELDS


@dataclass(frozen=True)
class ExtractionResult:
    """Structured slip fields extracted from one ImageAsset.

    Attributes:
        image_id: Id of the ImageAsset the fields were extracted from.
        fields: Mapping of slip field name to extracted text; optional fields may be None.
        parsed_amount: Numeric amount derived from `fields["amount"]`.
    """

    image_id: str
    fields: Dict[str, Optional[str]] = field(default_factory=dict)
    parsed_amount: float = 0.0

    def get(self, name: str) -> str:
        """Return the text of a field, or an empty string when absent."""
        value = self.fields.get(name)
        return value if isinstance(value, str) else ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "image_id": self.image_id,
            "fields": {name: self.fields.get(name) for name in SLIP_FIELDS},
            "parsed_amount": self.parsed_amount,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExtractionResult":
        raw_fields = data.get("fields") or {}
        return cls(
            image_id=str(data["image_id"]),
            fields={name: raw_fields.get(name) for name in SLIP_FIELDS},
            parsed_amount=float(data.get("parsed_amount") or 0.0),
        )
