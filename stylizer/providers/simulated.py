"""Local stylization provider.

Renders a painterly approximation of the target look with Pillow and
numpy instead of calling a remote service. The work happens inside
submit(); the returned handle resolves to completed once the configured
number of pending polls has been reported.
"""

import asyncio
import io
import logging
import uuid
from dataclasses import dataclass
from typing import Dict, List, Tuple

import numpy as np
from PIL import Image, ImageChops, ImageEnhance, ImageFilter, ImageOps

from stylizer.errors import AnalysisError, ProviderError
from stylizer.jobs.models import Analysis
from stylizer.providers.base import (
    PollResult,
    TransformationProvider,
    fallback_analysis,
    write_bytes,
)

logger = logging.getLogger(__name__)

# Rendering parameters
MAX_DIMENSION = 1024
POSTERIZE_LEVELS = 7
WARM_TINT = np.array([1.06, 1.02, 0.92], dtype=np.float32)
GLOW_RADIUS = 6
GLOW_STRENGTH = 0.35
COLOR_BOOST = 1.25
EDGE_THRESHOLD = 48
ANALYSIS_SIZE = (128, 128)

_HUE_NAMES: List[Tuple[int, str]] = [
    (15, "red"),
    (40, "amber"),
    (70, "golden"),
    (160, "green"),
    (200, "teal"),
    (260, "blue"),
    (300, "violet"),
    (340, "rose"),
    (360, "red"),
]


@dataclass
class _SimulatedJob:
    directive: str
    data: bytes
    pending_polls: int


def stylize_image(path: str) -> Tuple[bytes, str]:
    """Render the stylized image. Returns (encoded bytes, PIL format)."""
    with Image.open(path) as src:
        fmt = src.format if src.format in ("JPEG", "PNG") else "PNG"
        img = ImageOps.exif_transpose(src).convert("RGB")
    img.thumbnail((MAX_DIMENSION, MAX_DIMENSION), Image.LANCZOS)

    # Flatten texture while keeping edges
    smooth = img.filter(ImageFilter.MedianFilter(5)).filter(ImageFilter.SMOOTH_MORE)

    # Warm tint, then quantize into flat painted bands
    arr = np.asarray(smooth, dtype=np.float32) / 255.0
    arr = np.clip(arr * WARM_TINT, 0.0, 1.0)
    arr = np.round(arr * (POSTERIZE_LEVELS - 1)) / (POSTERIZE_LEVELS - 1)
    painted = Image.fromarray((arr * 255).astype(np.uint8), "RGB")
    painted = ImageEnhance.Color(painted).enhance(COLOR_BOOST)

    # Soft glow
    glow = ImageChops.screen(painted, painted.filter(ImageFilter.GaussianBlur(GLOW_RADIUS)))
    painted = Image.blend(painted, glow, GLOW_STRENGTH)

    # Ink lines from the original luminance edges
    edges = img.convert("L").filter(ImageFilter.FIND_EDGES)
    lines = edges.point(lambda v: 0 if v > EDGE_THRESHOLD else 255).filter(ImageFilter.SMOOTH)
    painted = ImageChops.multiply(painted, Image.merge("RGB", (lines, lines, lines)))

    buf = io.BytesIO()
    if fmt == "JPEG":
        painted.save(buf, format=fmt, quality=92)
    else:
        painted.save(buf, format=fmt)
    return buf.getvalue(), fmt


def _hue_name(degrees: float) -> str:
    for upper, name in _HUE_NAMES:
        if degrees < upper:
            return name
    return "red"


def describe_image(path: str) -> Analysis:
    """Derive commentary from brightness, saturation and dominant hue."""
    try:
        with Image.open(path) as src:
            img = src.convert("RGB")
    except (OSError, ValueError) as exc:
        raise AnalysisError(f"Cannot open {path}: {exc}") from exc
    img.thumbnail(ANALYSIS_SIZE)
    hsv = np.asarray(img.convert("HSV"), dtype=np.float32)
    if hsv.size == 0:
        raise AnalysisError(f"Empty image: {path}")

    hue = hsv[..., 0] * 360.0 / 255.0
    sat = hsv[..., 1] / 255.0
    val = hsv[..., 2] / 255.0

    brightness = float(val.mean())
    saturation = float(sat.mean())
    hist, bin_edges = np.histogram(hue, bins=36, range=(0.0, 360.0), weights=sat + 1e-6)
    dominant = float(bin_edges[int(np.argmax(hist))] + 5.0)
    hue_name = _hue_name(dominant)

    light = "sunlit" if brightness > 0.6 else "softly lit" if brightness > 0.35 else "twilight"
    vivid = "vibrant" if saturation > 0.45 else "gentle" if saturation > 0.2 else "muted"

    return Analysis(
        description=f"A {light}, {vivid} scene washed in {hue_name} tones, repainted with a hand-drawn Ghibli feel",
        style_notes=[
            f"Palette flattened into painted bands dominated by {hue_name} hues",
            f"Average brightness {brightness:.0%} gives a {light} atmosphere",
            f"Colour saturation {saturation:.0%} keeps the scene {vivid}",
            "Ink-like outlines traced from the original composition",
        ],
    )


class SimulatedProvider(TransformationProvider):
    """Offline provider that stylizes images locally."""

    name = "simulated"

    def __init__(self, pending_polls: int = 0):
        self._pending_polls = max(0, pending_polls)
        self._jobs: Dict[str, _SimulatedJob] = {}

    async def submit(self, input_path: str, style_directive: str) -> str:
        try:
            data, fmt = await asyncio.to_thread(stylize_image, input_path)
        except (OSError, ValueError) as exc:
            raise ProviderError(f"Failed to read image: {exc}") from exc

        handle = uuid.uuid4().hex
        self._jobs[handle] = _SimulatedJob(
            directive=style_directive, data=data, pending_polls=self._pending_polls
        )
        logger.debug("Simulated transformation %s rendered %d bytes as %s", handle, len(data), fmt)
        return handle

    async def poll(self, handle: str) -> PollResult:
        job = self._jobs.get(handle)
        if job is None:
            return PollResult.failed(f"Unknown transformation {handle}")
        if job.pending_polls > 0:
            job.pending_polls -= 1
            return PollResult.pending(progress=0.5)
        return PollResult.completed(handle)

    async def fetch(self, result_ref: str, output_path: str) -> str:
        job = self._jobs.pop(result_ref, None)
        if job is None:
            raise ProviderError(f"No rendered result for {result_ref}")
        try:
            return await asyncio.to_thread(write_bytes, output_path, job.data)
        except OSError as exc:
            raise ProviderError(f"Failed to save image: {exc}") from exc

    async def discard(self, handle: str) -> None:
        self._jobs.pop(handle, None)

    async def analyze(self, result_path: str) -> Analysis:
        try:
            return await asyncio.to_thread(describe_image, result_path)
        except Exception:
            logger.exception("Analysis failed for %s, using fallback", result_path)
            return fallback_analysis()
