"""OpenAI image provider.

The edit endpoint returns the finished image in the same call, so submit()
does all the work and hands back a handle that is already completed.
Analysis uses a vision-capable chat model asked for a JSON answer.
"""

import asyncio
import base64
import binascii
import json
import logging
import os
import uuid
from typing import Any, Dict, Optional

from openai import AsyncOpenAI, OpenAIError

from stylizer.errors import AnalysisError, ProviderError
from stylizer.jobs.models import Analysis
from stylizer.providers.base import (
    PollResult,
    TransformationProvider,
    fallback_analysis,
    guess_mime_type,
    read_bytes,
    write_bytes,
)

logger = logging.getLogger(__name__)

IMAGE_SIZE = "1024x1024"
ANALYSIS_MAX_TOKENS = 500
ANALYSIS_SYSTEM_PROMPT = (
    "You are an art expert specializing in Studio Ghibli's style. Analyze this "
    "Ghibli-style image and provide: 1) A brief description (max 30 words) "
    "2) Four specific style elements applied (e.g., 'Colors adjusted to match "
    "Ghibli's vibrant palette'). Format as JSON with 'description' and "
    "'styleNotes' array fields."
)
ANALYSIS_USER_PROMPT = "Analyze this Ghibli-style image and provide the requested information."


def parse_analysis(content: Optional[str]) -> Analysis:
    """Turn the model's JSON answer into an Analysis."""
    try:
        data: Dict[str, Any] = json.loads(content or "{}")
    except json.JSONDecodeError as exc:
        raise AnalysisError(f"Analysis response is not JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise AnalysisError("Analysis response is not a JSON object")

    description = data.get("description")
    notes = data.get("styleNotes")
    if not isinstance(description, str) or not isinstance(notes, list):
        raise AnalysisError("Analysis response is missing description or styleNotes")

    analysis = Analysis(
        description=description.strip(),
        style_notes=[str(n).strip() for n in notes if str(n).strip()],
    )
    if not analysis.is_usable():
        raise AnalysisError("Analysis response is empty")
    return analysis


class OpenAIImageProvider(TransformationProvider):
    """Single-call provider backed by the OpenAI images and chat APIs."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        image_model: str = "gpt-image-1",
        analysis_model: str = "gpt-4o",
        timeout: float = 60.0,
        client: Optional[AsyncOpenAI] = None,
    ):
        self._client = client or AsyncOpenAI(api_key=api_key, timeout=timeout)
        self._image_model = image_model
        self._analysis_model = analysis_model
        self._results: Dict[str, bytes] = {}

    async def submit(self, input_path: str, style_directive: str) -> str:
        try:
            image_bytes = await asyncio.to_thread(read_bytes, input_path)
        except OSError as exc:
            raise ProviderError(f"Failed to read image: {exc}") from exc

        params: Dict[str, Any] = {
            "model": self._image_model,
            "image": (os.path.basename(input_path), image_bytes, guess_mime_type(input_path)),
            "prompt": style_directive,
            "n": 1,
            "size": IMAGE_SIZE,
        }
        # dall-e models default to URLs; gpt-image models always return base64
        if self._image_model.startswith("dall-e"):
            params["response_format"] = "b64_json"

        try:
            response = await self._client.images.edit(**params)
        except OpenAIError as exc:
            raise ProviderError(f"Failed to transform image: {exc}") from exc

        b64 = response.data[0].b64_json if response.data else None
        if not b64:
            raise ProviderError("Failed to receive image data from OpenAI")
        try:
            data = base64.b64decode(b64)
        except (binascii.Error, ValueError) as exc:
            raise ProviderError(f"Invalid image data from OpenAI: {exc}") from exc

        handle = uuid.uuid4().hex
        self._results[handle] = data
        return handle

    async def poll(self, handle: str) -> PollResult:
        if handle not in self._results:
            return PollResult.failed(f"Unknown transformation {handle}")
        return PollResult.completed(handle)

    async def fetch(self, result_ref: str, output_path: str) -> str:
        data = self._results.pop(result_ref, None)
        if data is None:
            raise ProviderError(f"No generated image for {result_ref}")
        try:
            return await asyncio.to_thread(write_bytes, output_path, data)
        except OSError as exc:
            raise ProviderError(f"Failed to save image: {exc}") from exc

    async def discard(self, handle: str) -> None:
        self._results.pop(handle, None)

    async def analyze(self, result_path: str) -> Analysis:
        try:
            image_bytes = await asyncio.to_thread(read_bytes, result_path)
            encoded = base64.b64encode(image_bytes).decode("ascii")
            response = await self._client.chat.completions.create(
                model=self._analysis_model,
                messages=[
                    {"role": "system", "content": ANALYSIS_SYSTEM_PROMPT},
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": ANALYSIS_USER_PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {
                                    "url": f"data:{guess_mime_type(result_path)};base64,{encoded}"
                                },
                            },
                        ],
                    },
                ],
                response_format={"type": "json_object"},
                max_tokens=ANALYSIS_MAX_TOKENS,
            )
            return parse_analysis(response.choices[0].message.content)
        except Exception:
            logger.exception("Analysis failed for %s, using fallback", result_path)
            return fallback_analysis()

    async def aclose(self) -> None:
        await self._client.close()
