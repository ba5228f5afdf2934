"""Test doubles and image builders shared across the test suite."""

import io
from typing import List, Optional, Sequence, Union

import numpy as np
from PIL import Image

from stylizer.jobs.models import Analysis
from stylizer.providers.base import PollResult, TransformationProvider, write_bytes


def make_image_bytes(fmt: str = "JPEG", size=(64, 48), noise: bool = False, seed: int = 7) -> bytes:
    """Encode a small synthetic picture in the given Pillow format."""
    w, h = size
    if noise:
        rng = np.random.default_rng(seed)
        pixels = rng.integers(0, 256, size=(h, w, 3), dtype=np.uint8)
    else:
        x = np.linspace(0, 255, w, dtype=np.uint8)
        y = np.linspace(0, 255, h, dtype=np.uint8)
        pixels = np.zeros((h, w, 3), dtype=np.uint8)
        pixels[..., 0] = x[None, :]
        pixels[..., 1] = y[:, None]
        pixels[..., 2] = 120
    buf = io.BytesIO()
    options = {"quality": 95} if fmt == "JPEG" else {}
    Image.fromarray(pixels, "RGB").save(buf, format=fmt, **options)
    return buf.getvalue()


PollStep = Union[PollResult, Exception]


class FakeProvider(TransformationProvider):
    """Scripted provider that records every call."""

    name = "fake"

    def __init__(
        self,
        polls: Optional[Sequence[PollStep]] = None,
        submit_error: Optional[Exception] = None,
        fetch_error: Optional[Exception] = None,
        analysis: Optional[Analysis] = None,
        analyze_error: Optional[Exception] = None,
        result_bytes: bytes = b"processed-image",
    ):
        self.polls: List[PollStep] = list(polls) if polls is not None else [PollResult.completed("result-1")]
        self.submit_error = submit_error
        self.fetch_error = fetch_error
        self.analysis = analysis or Analysis(description="Fake description", style_notes=["Fake note"])
        self.analyze_error = analyze_error
        self.result_bytes = result_bytes
        self.calls: List[tuple] = []
        self.discarded: List[str] = []
        self.closed = False

    def count(self, method: str) -> int:
        return sum(1 for call in self.calls if call[0] == method)

    async def submit(self, input_path: str, style_directive: str) -> str:
        self.calls.append(("submit", input_path, style_directive))
        if self.submit_error is not None:
            raise self.submit_error
        return "handle-1"

    async def poll(self, handle: str) -> PollResult:
        self.calls.append(("poll", handle))
        # The last scripted step repeats forever
        step = self.polls.pop(0) if len(self.polls) > 1 else self.polls[0]
        if isinstance(step, Exception):
            raise step
        return step

    async def fetch(self, result_ref: str, output_path: str) -> str:
        self.calls.append(("fetch", result_ref, output_path))
        if self.fetch_error is not None:
            raise self.fetch_error
        return write_bytes(output_path, self.result_bytes)

    async def analyze(self, result_path: str) -> Analysis:
        self.calls.append(("analyze", result_path))
        if self.analyze_error is not None:
            raise self.analyze_error
        return self.analysis

    async def discard(self, handle: str) -> None:
        self.discarded.append(handle)

    async def aclose(self) -> None:
        self.closed = True
