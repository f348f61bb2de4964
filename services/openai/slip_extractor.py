"""Description: Payment slip field extraction using OpenAI's Responses API."""

import logging
import time
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from models.errors import MalformedResponse, TransportFailure
from services.openai.media_inputs import build_inputs, to_image_data_url
from services.openai.response_parser import extract_usage, parse_function_call
from services.openai.slip_prompts import build_system_prompt, build_user_prompt
from services.openai.slip_schema import FUNCTION_DEFINITION, FUNCTION_NAME

LOGGER = logging.getLogger(__name__)


class SlipExtractor:
    """Send one slip image plus the fixed field schema to the model and return its fields."""

    def __init__(self, client: AsyncOpenAI, *, model: str = "gpt-5", timeout: Optional[float] = None) -> None:
        """Initialize the extractor with an OpenAI async client."""
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model
        self.timeout = timeout
        self.system_prompt = build_system_prompt()
        self.user_prompt = build_user_prompt()

    async def extract(self, image_bytes: bytes, mime_type: str = "image/jpeg") -> Dict[str, Optional[str]]:
        """Return the slip fields read from `image_bytes`.

        Raises:
            TransportFailure: The call failed at the network or HTTP layer.
            MalformedResponse: The model returned no usable structured payload.
        """
        start_time = time.time()
        inputs = build_inputs(
            self.system_prompt,
            self.user_prompt,
            image_url=to_image_data_url(image_bytes, mime_type),
        )
        response = await self._create_response(inputs)
        fields = parse_function_call(response, tool_name=FUNCTION_NAME)

        usage = extract_usage(response)
        LOGGER.info(
            "Slip extraction latency: %.3fs (input_tokens=%s, output_tokens=%s)",
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return fields

    async def _create_response(self, inputs: List[Dict[str, Any]]) -> Any:
        """Send the request, translating SDK errors into the service's error kinds."""
        options: Dict[str, Any] = {}
        if self.timeout is not None:
            options["timeout"] = self.timeout
        try:
            return await self.client.responses.create(
                model=self.model,
                input=inputs,
                tools=[FUNCTION_DEFINITION],
                tool_choice={"type": "function", "name": FUNCTION_NAME},
                **options,
            )
        except openai.APIStatusError as exc:
            LOGGER.error("OpenAI returned HTTP %s: %s", exc.status_code, exc)
            raise TransportFailure(f"Extraction service returned HTTP {exc.status_code}.") from exc
        except openai.APIConnectionError as exc:
            LOGGER.error("OpenAI connection failed: %s", exc)
            raise TransportFailure(f"Could not reach the extraction service: {exc}") from exc
        except openai.APIResponseValidationError as exc:
            LOGGER.error("OpenAI response failed validation: %s", exc)
            raise MalformedResponse("Extraction service returned an invalid response.") from exc
        except openai.OpenAIError as exc:
            LOGGER.error("Error during OpenAI Responses API call: %s", exc)
            raise TransportFailure(str(exc)) from exc

# end of SlipExtractor
