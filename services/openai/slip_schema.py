"""Schema definitions for the payment slip extraction tool."""

from typing import Any, Dict

from models.extraction_result import OPTIONAL_FIELDS, SLIP_FIELDS

FUNCTION_NAME = "record_payment_slip"

FIELD_DESCRIPTIONS: Dict[str, str] = {
    "sender_name": "Name of the person or account holder sending the money.",
    "recipient_name": "Name of the person or business receiving the money.",
    "amount": "Transferred amount exactly as printed, including separators and currency.",
    "transaction_date": "Transaction date exactly as printed on the slip.",
    "transaction_time": "Transaction time exactly as printed on the slip.",
    "transaction_id": "Reference or transaction id printed on the slip.",
    "sender_bank_name": "Bank the money was sent from.",
    "sender_bank_account_number": "Sender account number, masked digits kept as printed.",
    "recipient_bank_name": "Bank the money was sent to.",
    "recipient_bank_account_number": "Recipient account number, masked digits kept as printed.",
    "country": "Country of the transaction, if shown.",
}


def _field_schema(name: str) -> Dict[str, Any]:
    # Strict mode requires every property to be listed; optional ones accept null.
    field_type: Any = ["string", "null"] if name in OPTIONAL_FIELDS else "string"
    return {"type": field_type, "description": FIELD_DESCRIPTIONS[name]}


FUNCTION_DEFINITION: Dict[str, Any] = {
    "type": "function",
    "name": FUNCTION_NAME,
    "description": "Return the transaction fields read from a bank transfer slip.",
    "parameters": {
        "type": "object",
        "properties": {name: _field_schema(name) for name in SLIP_FIELDS},
        "required": list(SLIP_FIELDS),
        "additionalProperties": False,
    },
    "strict": True,
}
