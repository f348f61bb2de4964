"""Utilities to build image input payloads for the Responses API."""

import base64
from typing import Any, Dict, List


def to_image_data_url(image_bytes: bytes, mime_type: str = "image/jpeg") -> str:
    """Encode raw image bytes into a data URL suitable for vision input."""
    if not image_bytes:
        raise ValueError("Image bytes are required.")
    encoded = base64.b64encode(image_bytes).decode("ascii")
    return f"data:{mime_type or 'image/jpeg'};base64,{encoded}"


def build_inputs(system_prompt: str, user_prompt: str, *, image_url: str) -> List[Dict[str, Any]]:
    """Build the Responses API input array: system prompt, instructions, then the image."""
    return [
        {
            "type": "message",
            "role": "system",
            "content": [{"type": "input_text", "text": system_prompt}],
        },
        {
            "type": "message",
            "role": "user",
            "content": [
                {"type": "input_text", "text": user_prompt},
                {"type": "input_image", "image_url": image_url},
            ],
        },
    ]
