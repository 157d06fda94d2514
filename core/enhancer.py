"""
MedScope.ai - Image Loading & Adaptive Enhancement
Decodes uploads and applies quality-driven enhancement for display and text detection.
"""
import io
import logging
import math
from pathlib import Path
from typing import List, Tuple

import cv2
import numpy as np
from PIL import Image, ImageEnhance, ImageFilter, ImageOps

from core.errors import AnalysisError
from core.quality import QualityMetrics

logger = logging.getLogger(__name__)

FORMAT_MIME_TYPES = {
    "JPEG": "image/jpeg",
    "PNG": "image/png",
    "GIF": "image/gif",
}


def load_image(source) -> Image.Image:
    """
    Load an image from various sources.

    Args:
        source: File path (str/Path), bytes, or PIL Image.

    Returns:
        PIL Image in L, LA, RGB or RGBA mode. The decoder's format is kept
        on ``image.format`` where there is one.
    """
    if isinstance(source, Image.Image):
        image = source
    elif isinstance(source, bytes):
        image = _open(io.BytesIO(source))
    elif isinstance(source, (str, Path)):
        image = _open(Path(source))
    else:
        raise ValueError(f"Unsupported image source type: {type(source)}")

    fmt = image.format
    image = _normalize_mode(image)
    image.format = fmt
    return image


def mime_type_for(image: Image.Image) -> str:
    return FORMAT_MIME_TYPES.get(image.format or "", "image/png")


def gamma_lut(gamma: float) -> List[int]:
    """Lookup table lifting midtones by ``gamma`` (out = in^(1/gamma))."""
    return [round(255 * (i / 255) ** (1 / gamma)) for i in range(256)]


def _open(fp) -> Image.Image:
    try:
        image = Image.open(fp)
        image.load()
    except (OSError, Image.DecompressionBombError) as e:
        logger.warning(f"Image decode failed: {e}")
        raise AnalysisError(
            "Failed to analyze image. Please ensure the file is a valid medical image."
        ) from e
    return image


def _normalize_mode(image: Image.Image) -> Image.Image:
    mode = image.mode
    if mode in ("L", "LA", "RGB", "RGBA"):
        return image
    if mode == "P":
        return image.convert("RGBA" if "transparency" in image.info else "RGB")
    if mode in ("I", "I;16", "I;16B", "I;16L", "F"):
        # High bit-depth greyscale: stretch to 8 bits
        arr = np.asarray(image, dtype=np.float32)
        arr = (arr - arr.min()) / (arr.max() - arr.min() + 1e-8) * 255
        return Image.fromarray(np.round(arr).astype(np.uint8))
    if mode == "1":
        return image.convert("L")
    return image.convert("RGB")


class ImageEnhancer:
    """
    Adaptive enhancement for medical images.
    Every image is normalized and gamma corrected; further steps are chosen
    from the quality metrics of the original upload.
    """

    def __init__(self):
        from config import settings
        self.settings = settings

    def enhance(self, image: Image.Image, quality: QualityMetrics) -> Image.Image:
        """
        Apply the enhancement steps the quality metrics call for.

        Args:
            image: Decoded image (alpha is dropped).
            quality: Metrics of the original image.

        Returns:
            Enhanced image in L or RGB mode.
        """
        s = self.settings
        image = image.convert("L" if image.mode in ("L", "LA") else "RGB")
        steps = ["normalize", "gamma"]

        image = ImageOps.autocontrast(image, cutoff=s.ENHANCE_NORMALIZE_CUTOFF, preserve_tone=True)
        image = self._point(image, gamma_lut(s.ENHANCE_GAMMA))

        if quality.brightness < s.ENHANCE_BRIGHTNESS_BELOW:
            image = ImageEnhance.Brightness(image).enhance(s.ENHANCE_BRIGHTNESS_FACTOR)
            steps.append("brightness")

        if quality.contrast < s.ENHANCE_CONTRAST_BELOW:
            lut = [
                min(255, max(0, round(s.ENHANCE_LINEAR_SLOPE * i + s.ENHANCE_LINEAR_OFFSET)))
                for i in range(256)
            ]
            image = self._point(image, lut)
            steps.append("linear")

        if quality.sharpness < s.ENHANCE_SHARPEN_BELOW:
            radius = 2 if quality.sharpness < s.ENHANCE_STRONG_SHARPEN_BELOW else 1
            image = image.filter(ImageFilter.UnsharpMask(
                radius=radius,
                percent=s.ENHANCE_UNSHARP_PERCENT,
                threshold=s.ENHANCE_UNSHARP_THRESHOLD,
            ))
            steps.append(f"sharpen(r={radius})")

        if quality.noise > s.ENHANCE_DENOISE_ABOVE:
            image = image.filter(ImageFilter.MedianFilter(size=3))
            steps.append("median")

        clip_limit = 3.0 if quality.contrast < s.CLAHE_STRONG_CONTRAST_BELOW else 2.0
        image = self._clahe(image, clip_limit)
        steps.append(f"clahe(clip={clip_limit:g})")

        logger.info(f"Enhancement steps: {', '.join(steps)}")
        return image

    def enhance_bytes(self, data: bytes, quality: QualityMetrics) -> Tuple[bytes, str]:
        """
        Decode, enhance and re-encode an image.

        Returns:
            (image bytes, MIME type). JPEG sources stay JPEG, everything else
            is written as PNG. If enhancement fails the original bytes are
            returned unchanged.
        """
        image = load_image(data)
        source_mime = mime_type_for(image)
        try:
            enhanced = self.enhance(image, quality)
            return self.encode(enhanced, source_mime)
        except (OSError, ValueError, cv2.error) as e:
            logger.error(f"Image enhancement error: {e}", exc_info=True)
            return data, source_mime

    @staticmethod
    def encode(image: Image.Image, source_mime: str = "image/png") -> Tuple[bytes, str]:
        buf = io.BytesIO()
        if source_mime == "image/jpeg":
            image.save(buf, format="JPEG", quality=95)
            return buf.getvalue(), "image/jpeg"
        image.save(buf, format="PNG")
        return buf.getvalue(), "image/png"

    @staticmethod
    def _point(image: Image.Image, lut: List[int]) -> Image.Image:
        return image.point(lut * len(image.getbands()))

    def _clahe(self, image: Image.Image, clip_limit: float) -> Image.Image:
        """Contrast-limited adaptive histogram equalization on luminance."""
        tile = self.settings.CLAHE_TILE_PIXELS
        width, height = image.size
        grid = (max(1, math.ceil(width / tile)), max(1, math.ceil(height / tile)))
        clahe = cv2.createCLAHE(clipLimit=clip_limit, tileGridSize=grid)

        arr = np.asarray(image)
        if image.mode == "L":
            return Image.fromarray(clahe.apply(arr))

        lab = cv2.cvtColor(arr, cv2.COLOR_RGB2LAB)
        lab[..., 0] = clahe.apply(np.ascontiguousarray(lab[..., 0]))
        return Image.fromarray(cv2.cvtColor(lab, cv2.COLOR_LAB2RGB))
