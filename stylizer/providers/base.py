"""Transformation provider interface and shared data types.

Every provider models the external transformation as an asynchronous job
with three calls: submit, poll and fetch. Providers that finish in a
single call hand back a handle that is already completed, so the
orchestrator never needs to know which variant it is driving.
"""

import mimetypes
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from stylizer.jobs.models import Analysis

STYLE_DIRECTIVE = (
    "Transform this image into Studio Ghibli art style. Maintain the composition "
    "but apply Hayao Miyazaki's iconic aesthetic with soft lighting, vibrant colors, "
    "hand-drawn quality, and dreamy atmosphere. Match the style of films like "
    "Spirited Away and My Neighbor Totoro."
)

FALLBACK_ANALYSIS = Analysis(
    description="Transformed with Ghibli's dreamy, hand-painted style",
    style_notes=[
        "Colors adjusted to match Ghibli's vibrant palette",
        "Hand-drawn style lines and textures applied",
        "Lighting enhanced for that dreamy Ghibli atmosphere",
        "Original image composition preserved",
    ],
)


def fallback_analysis() -> Analysis:
    return FALLBACK_ANALYSIS.model_copy(deep=True)


class PollState(str, Enum):
    PENDING = "pending"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class PollResult:
    """Outcome of a single status check against the provider."""
    state: PollState
    progress: Optional[float] = None
    result_ref: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def pending(cls, progress: Optional[float] = None) -> "PollResult":
        return cls(PollState.PENDING, progress=progress)

    @classmethod
    def completed(cls, result_ref: str) -> "PollResult":
        return cls(PollState.COMPLETED, progress=1.0, result_ref=result_ref)

    @classmethod
    def failed(cls, reason: str) -> "PollResult":
        return cls(PollState.FAILED, reason=reason)


class TransformationProvider(ABC):
    """Abstract interface over an external image generation service.

    To add a provider:
    1. Subclass TransformationProvider in a module under stylizer/providers/
    2. Implement submit(), poll(), fetch() and analyze()
    3. Register it in providers.registry.build_provider
    """

    name: str = "abstract"

    @abstractmethod
    async def submit(self, input_path: str, style_directive: str) -> str:
        """Start a transformation. Returns the provider's job handle."""
        ...

    @abstractmethod
    async def poll(self, handle: str) -> PollResult:
        """Check the status of a submitted transformation once."""
        ...

    @abstractmethod
    async def fetch(self, result_ref: str, output_path: str) -> str:
        """Write the finished result to output_path and return it."""
        ...

    @abstractmethod
    async def analyze(self, result_path: str) -> Analysis:
        """Describe a result. Must return a usable Analysis, never raise."""
        ...

    async def discard(self, handle: str) -> None:
        """Drop anything still held for handle. Called once per submitted job."""
        return None

    async def aclose(self) -> None:
        """Release network clients."""
        return None


def guess_mime_type(path: str) -> str:
    mime, _ = mimetypes.guess_type(path)
    return mime or "image/jpeg"


def read_bytes(path: str) -> bytes:
    with open(path, "rb") as fh:
        return fh.read()


def write_bytes(path: str, data: bytes) -> str:
    os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
    with open(path, "wb") as fh:
        fh.write(data)
    return path
