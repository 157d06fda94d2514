"""
MedScope.ai - Image Quality Analysis
Scores brightness, contrast, sharpness and noise, and maps weak scores to issues.
"""
import logging
from dataclasses import asdict, dataclass
from typing import Dict, List

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)


@dataclass
class QualityMetrics:
    """
    Quality scores for a single image.

    brightness and contrast are normalized (first channel mean / 255 and
    standard deviation / 128). sharpness is the mean gradient magnitude of
    the greyscale image and noise the mean per-channel standard deviation,
    both on the 0-255 scale.
    """

    brightness: float
    contrast: float
    sharpness: float
    noise: float

    def to_dict(self) -> Dict[str, float]:
        return {k: round(float(v), 4) for k, v in asdict(self).items()}


def analyze_quality(image: Image.Image) -> QualityMetrics:
    """Compute quality metrics for a decoded image."""
    arr = np.asarray(image, dtype=np.float64)
    channels = [arr] if arr.ndim == 2 else [arr[..., i] for i in range(arr.shape[-1])]

    first = channels[0]
    brightness = first.mean() / 255
    contrast = _stdev(first) / 128
    noise = float(np.mean([_stdev(c) for c in channels]))
    sharpness = compute_sharpness(image)

    metrics = QualityMetrics(
        brightness=float(brightness),
        contrast=float(contrast),
        sharpness=float(sharpness),
        noise=noise,
    )
    logger.debug(f"Quality metrics: {metrics}")
    return metrics


def compute_sharpness(image: Image.Image) -> float:
    """
    Mean central-difference gradient magnitude over the greyscale image.

    The sum runs over interior pixels only but is divided by the full pixel
    count, so thin borders slightly damp the score.
    """
    grey = np.asarray(image.convert("L"), dtype=np.float64)
    height, width = grey.shape
    if height < 3 or width < 3:
        return 0.0

    dx = np.abs(grey[1:-1, 2:] - grey[1:-1, :-2])
    dy = np.abs(grey[2:, 1:-1] - grey[:-2, 1:-1])
    return float(np.sqrt(dx * dx + dy * dy).sum() / (width * height))


def detect_issues(metrics: QualityMetrics) -> List[str]:
    """Return the quality issues, in a fixed order, that the metrics trip."""
    from config.settings import (
        HIGH_BRIGHTNESS_THRESHOLD,
        HIGH_NOISE_THRESHOLD,
        LOW_BRIGHTNESS_THRESHOLD,
        LOW_CONTRAST_THRESHOLD,
        LOW_SHARPNESS_THRESHOLD,
    )

    issues = []
    if metrics.brightness < LOW_BRIGHTNESS_THRESHOLD:
        issues.append("Low brightness")
    elif metrics.brightness > HIGH_BRIGHTNESS_THRESHOLD:
        issues.append("High brightness")
    if metrics.contrast < LOW_CONTRAST_THRESHOLD:
        issues.append("Poor contrast")
    if metrics.sharpness < LOW_SHARPNESS_THRESHOLD:
        issues.append("Low sharpness")
    if metrics.noise > HIGH_NOISE_THRESHOLD:
        issues.append("High noise levels")
    return issues


def recommendations_for(issues: List[str]) -> List[str]:
    from config.settings import QUALITY_RECOMMENDATIONS

    return [QUALITY_RECOMMENDATIONS.get(issue, "") for issue in issues]


def _stdev(values: np.ndarray) -> float:
    n = values.size
    if n < 2:
        return 0.0
    return float(values.std(ddof=1))
