"""Replicate predictions API provider (submit, then poll until done)."""

import asyncio
import base64
import logging
from typing import Any, Dict, Optional

import httpx

from stylizer.errors import ProviderError
from stylizer.jobs.models import Analysis
from stylizer.providers.base import (
    PollResult,
    TransformationProvider,
    guess_mime_type,
    read_bytes,
    write_bytes,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.replicate.com/v1/predictions"

# img2img generation parameters
NUM_OUTPUTS = 1
GUIDANCE_SCALE = 7.5
PROMPT_STRENGTH = 0.8
NUM_INFERENCE_STEPS = 50

STATIC_ANALYSIS = Analysis(
    description="Transformed with Studio Ghibli's magical aesthetic",
    style_notes=[
        "Vibrant, hand-painted color palette characteristic of Ghibli films",
        "Soft, dreamlike lighting and atmosphere",
        "Delicate linework and attention to natural details",
        "Whimsical elements added to enhance the magical feel",
    ],
)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.reason_phrase or f"HTTP {response.status_code}"
    if isinstance(body, dict):
        return str(body.get("detail") or body.get("error") or response.reason_phrase)
    return response.reason_phrase or f"HTTP {response.status_code}"


def _json_body(response: httpx.Response) -> Dict[str, Any]:
    try:
        body = response.json()
    except ValueError as exc:
        raise ProviderError(f"API error: invalid JSON response ({exc})") from exc
    if not isinstance(body, dict):
        raise ProviderError("API error: unexpected response shape")
    return body


class ReplicateProvider(TransformationProvider):
    """Polling-based provider backed by Replicate's prediction endpoints."""

    name = "replicate"

    def __init__(
        self,
        api_token: str,
        model_version: str,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 60.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self._api_token = api_token
        self._model_version = model_version
        self._base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(timeout=timeout)

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Token {self._api_token}",
            "Content-Type": "application/json",
        }

    async def submit(self, input_path: str, style_directive: str) -> str:
        try:
            image_bytes = await asyncio.to_thread(read_bytes, input_path)
        except OSError as exc:
            raise ProviderError(f"Failed to read image: {exc}") from exc

        encoded = base64.b64encode(image_bytes).decode("ascii")
        payload = {
            "version": self._model_version,
            "input": {
                "prompt": style_directive,
                "image": f"data:{guess_mime_type(input_path)};base64,{encoded}",
                "num_outputs": NUM_OUTPUTS,
                "guidance_scale": GUIDANCE_SCALE,
                "prompt_strength": PROMPT_STRENGTH,
                "num_inference_steps": NUM_INFERENCE_STEPS,
            },
        }

        try:
            response = await self._client.post(self._base_url, json=payload, headers=self._headers())
        except httpx.RequestError as exc:
            raise ProviderError(f"Replicate request failed: {exc}") from exc
        if response.is_error:
            raise ProviderError(f"API error: {_error_detail(response)}")

        prediction_id = _json_body(response).get("id")
        if not prediction_id:
            raise ProviderError("API error: prediction id missing from response")
        logger.info("Replicate prediction %s created", prediction_id)
        return prediction_id

    async def poll(self, handle: str) -> PollResult:
        try:
            response = await self._client.get(f"{self._base_url}/{handle}", headers=self._headers())
        except httpx.RequestError as exc:
            raise ProviderError(f"Replicate request failed: {exc}") from exc
        if response.is_error:
            raise ProviderError(f"API error: {_error_detail(response)}")

        data = _json_body(response)
        status = data.get("status")
        if status == "succeeded":
            output = data.get("output")
            image_url = output[0] if isinstance(output, list) and output else output
            if not image_url:
                return PollResult.failed("Transformation succeeded without an output image")
            return PollResult.completed(str(image_url))
        if status in ("failed", "canceled"):
            return PollResult.failed(str(data.get("error") or "Transformation failed"))
        return PollResult.pending(progress=0.5 if status == "processing" else 0.1)

    async def fetch(self, result_ref: str, output_path: str) -> str:
        try:
            response = await self._client.get(result_ref, follow_redirects=True)
        except httpx.RequestError as exc:
            raise ProviderError(f"Failed to download image: {exc}") from exc
        if response.is_error:
            raise ProviderError(f"Failed to download image: {response.reason_phrase}")
        try:
            return await asyncio.to_thread(write_bytes, output_path, response.content)
        except OSError as exc:
            raise ProviderError(f"Failed to save image: {exc}") from exc

    async def analyze(self, result_path: str) -> Analysis:
        return STATIC_ANALYSIS.model_copy(deep=True)

    async def aclose(self) -> None:
        await self._client.aclose()
