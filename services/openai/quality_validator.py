"""Description: Proof photo quality scoring using OpenAI's Responses API."""

import logging
import time
from typing import Any, Dict, List

from openai import AsyncOpenAI

from models.upload_models import PhotoValidationResult
from services.openai.quality_prompts import build_system_prompt, build_user_prompt
from services.openai.quality_schema import FUNCTION_DEFINITION, FUNCTION_NAME
from services.openai.response_parser import extract_usage, parse_function_call

LOGGER = logging.getLogger(__name__)

DEFAULT_MODEL = "gpt-5-mini"
PASS_THRESHOLD = 60.0


class PhotoQualityValidator:
    """Score a stored proof photo by its public URL."""

    def __init__(self, client: AsyncOpenAI, model: str = DEFAULT_MODEL) -> None:
        """Initialize the validator with an OpenAI async client."""
        if client is None:
            raise ValueError("OpenAI client must be provided.")
        self.client = client
        self.model = model
        self.system_prompt = build_system_prompt()

    async def validate(self, photo_url: str, photo_tag: str) -> PhotoValidationResult:
        """Return score, issues and suggestions for the photo at `photo_url`.

        Raises:
            Exception: Any API or parsing failure; callers decide whether it is fatal.
        """
        start_time = time.time()
        response = await self._create_response(self._build_inputs(photo_url, photo_tag))
        result = self._parse_response(response)
        usage = extract_usage(response)
        LOGGER.info(
            "Quality validation for %s: score=%.1f latency=%.2fs tokens=%s/%s",
            photo_url,
            result.score,
            time.time() - start_time,
            usage["input_tokens"],
            usage["output_tokens"],
        )
        return result

    def _build_inputs(self, photo_url: str, photo_tag: str) -> List[Dict[str, Any]]:
        return [
            {
                "type": "message",
                "role": "system",
                "content": [{"type": "input_text", "text": self.system_prompt}],
            },
            {
                "type": "message",
                "role": "user",
                "content": [
                    {"type": "input_text", "text": build_user_prompt(photo_tag)},
                    {"type": "input_image", "image_url": photo_url},
                ],
            },
        ]

    async def _create_response(self, inputs: List[Dict[str, Any]]) -> Any:
        """Send the scoring request to the OpenAI Responses API."""
        try:
            return await self.client.responses.create(
                model=self.model,
                input=inputs,
                tools=[FUNCTION_DEFINITION],
                tool_choice={"type": "function", "name": FUNCTION_NAME},
            )
        except Exception as exc:
            LOGGER.error("Error during OpenAI Responses API call: %s", exc)
            raise

    def _parse_response(self, response: Any) -> PhotoValidationResult:
        try:
            args = parse_function_call(response, tool_name=FUNCTION_NAME)
        except Exception as exc:
            LOGGER.error("Error parsing OpenAI response: %s", exc)
            raise

        score = max(0.0, min(100.0, float(args.get("score") or 0.0)))
        passed = args.get("passed")
        return PhotoValidationResult(
            score=score,
            issues=[str(issue) for issue in args.get("issues") or []],
            suggestions=[str(s) for s in args.get("suggestions") or []],
            passed=bool(passed) if passed is not None else score >= PASS_THRESHOLD,
        )

# end of PhotoQualityValidator
