"""Prompt builders for payment slip extraction."""

from models.extraction_result import OPTIONAL_FIELDS, SLIP_FIELDS


def build_system_prompt() -> str:
    """Return the system prompt for the extractor."""
    return (
        "You read bank transfer slips and mobile banking receipts, most of them Thai. "
        "Copy values exactly as printed; do not translate names, convert dates, or guess. "
        "Use null for optional fields that are not visible on the slip."
    )


def build_user_prompt() -> str:
    """Return the user prompt listing the fields to extract."""
    lines = []
    for name in SLIP_FIELDS:
        label = name.replace("_", " ")
        lines.append(f"- {label} (if present)" if name in OPTIONAL_FIELDS else f"- {label}")
    return (
        "Extract the following fields from the attached payment slip and return them "
        "through the provided function only:\n" + "\n".join(lines)
    )
