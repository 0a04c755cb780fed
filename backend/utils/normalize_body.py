# template-compositor/backend/utils/normalize_body.py

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Tuple, Type

from PIL import Image

from .errors import ExtractOutOfBounds


CANVAS_WIDTH = 1080
CANVAS_HEIGHT = 1350
HEADER_HEIGHT = 200
FOOTER_HEIGHT = 200
BODY_HEIGHT = CANVAS_HEIGHT - HEADER_HEIGHT - FOOTER_HEIGHT  # 950

BODY_SIZE: Tuple[int, int] = (CANVAS_WIDTH, BODY_HEIGHT)


class NormalizationPolicy(ABC):
    """Turns a decoded AI image into the exact 1080x950 body block."""

    name = ""

    @abstractmethod
    def normalize(self, img: Image.Image) -> Image.Image:
        ...

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class ResizeToCover(NormalizationPolicy):
    """
    Fill/Crop normalization:
    - center crop the longer dimension to the body aspect ratio
    - then resize to exactly 1080x950 (Lanczos)

    Works for any input size. An image already 1080x950 passes through
    unchanged apart from the RGBA conversion.
    """

    name = "resize"

    def normalize(self, img: Image.Image) -> Image.Image:
        target_w, target_h = BODY_SIZE
        cropped = crop_to_aspect_ratio_fill(img, target_w / target_h)
        if cropped.size != BODY_SIZE:
            cropped = cropped.resize(BODY_SIZE, resample=Image.LANCZOS)
        return cropped.convert("RGBA")


class FixedRegionExtract(NormalizationPolicy):
    """
    The AI image already carries its own 200px header and footer rows;
    cut out the content band in between.
    """

    name = "extract"

    region = (0, HEADER_HEIGHT, CANVAS_WIDTH, BODY_HEIGHT)  # left, top, width, height

    def normalize(self, img: Image.Image) -> Image.Image:
        left, top, width, height = self.region
        w, h = img.size
        if w < left + width or h < top + height:
            raise ExtractOutOfBounds(img.size, self.region)

        return img.crop((left, top, left + width, top + height)).convert("RGBA")


POLICIES: Dict[str, Type[NormalizationPolicy]] = {
    ResizeToCover.name: ResizeToCover,
    FixedRegionExtract.name: FixedRegionExtract,
}


def get_policy(name: str) -> NormalizationPolicy:
    key = (name or "").strip().lower()
    if key not in POLICIES:
        raise ValueError(
            f"Unknown body normalization policy '{name}'. "
            f"Expected one of: {', '.join(sorted(POLICIES))}"
        )
    return POLICIES[key]()


def crop_to_aspect_ratio_fill(img: Image.Image, target_ratio: float) -> Image.Image:
    """Center crop so that width / height == target_ratio (to the nearest pixel)."""
    w, h = img.size
    if w <= 0 or h <= 0:
        return img

    current_ratio = w / h

    # Already close enough (tiny floating error tolerance)
    if abs(current_ratio - target_ratio) < 1e-6:
        return img

    if current_ratio > target_ratio:
        # Too wide -> crop width
        new_w = max(1, min(int(round(h * target_ratio)), w))
        left = (w - new_w) // 2
        return img.crop((left, 0, left + new_w, h))

    # Too tall -> crop height
    new_h = max(1, min(int(round(w / target_ratio)), h))
    top = (h - new_h) // 2
    return img.crop((0, top, w, top + new_h))
