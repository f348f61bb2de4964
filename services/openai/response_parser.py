"""Helpers to parse Responses API outputs."""

import json
from typing import Any, Dict, Optional

from models.errors import MalformedResponse
from models.extraction_result import REQUIRED_FIELDS, SLIP_FIELDS


def parse_function_call(response: Any, *, tool_name: str) -> Dict[str, Optional[str]]:
    """Extract and validate the slip fields from the named function call.

    Raises:
        MalformedResponse: If the call is missing, its arguments are not a JSON
            object, a required field is missing, or a value is not a string.
    """
    for item in getattr(response, "output", None) or []:
        if getattr(item, "type", None) == "function_call" and getattr(item, "name", None) == tool_name:
            raw_arguments = getattr(item, "arguments", None)
            if not raw_arguments:
                raise MalformedResponse(f"Function call '{tool_name}' carried no arguments.")
            try:
                args = json.loads(raw_arguments)
            except (TypeError, json.JSONDecodeError) as exc:
                raise MalformedResponse(f"Function call arguments are not valid JSON: {exc}") from exc
            return validate_fields(args)
    raise MalformedResponse(f"No function_call output for '{tool_name}' found in Responses API output.")


def validate_fields(args: Any) -> Dict[str, Optional[str]]:
    """Check the payload shape against the slip schema and return the known fields."""
    if not isinstance(args, dict):
        raise MalformedResponse("Extraction payload is not a JSON object.")
    missing = [name for name in REQUIRED_FIELDS if name not in args]
    if missing:
        raise MalformedResponse(f"Extraction payload is missing required fields: {', '.join(missing)}")

    fields: Dict[str, Optional[str]] = {}
    for name in SLIP_FIELDS:
        value = args.get(name)
        if value is None and name in REQUIRED_FIELDS:
            raise MalformedResponse(f"Required field '{name}' is null.")
        if value is not None and not isinstance(value, str):
            raise MalformedResponse(f"Field '{name}' must be a string, got {type(value).__name__}.")
        fields[name] = value
    return fields


def extract_usage(response: Any) -> Dict[str, Optional[int]]:
    """Return token usage information from the response, if present."""
    usage = getattr(response, "usage", None)
    return {
        "input_tokens": getattr(usage, "input_tokens", None) if usage else None,
        "output_tokens": getattr(usage, "output_tokens", None) if usage else None,
    }
