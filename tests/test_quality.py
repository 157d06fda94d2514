"""
Tests for image quality metrics and issue detection.
"""
import numpy as np
import pytest
from PIL import Image

from core.quality import (
    QualityMetrics,
    analyze_quality,
    compute_sharpness,
    detect_issues,
    recommendations_for,
)


class TestQualityMetrics:
    """Test suite for analyze_quality and compute_sharpness."""

    def test_uniform_image(self):
        """A flat grey image has mid brightness and zero contrast, sharpness and noise."""
        img = Image.fromarray(np.full((32, 32), 128, dtype=np.uint8))
        m = analyze_quality(img)
        assert m.brightness == pytest.approx(128 / 255)
        assert m.contrast == 0.0
        assert m.sharpness == 0.0
        assert m.noise == 0.0

    def test_brightness_uses_first_channel(self):
        """Brightness and contrast come from the first channel only."""
        arr = np.zeros((16, 16, 3), dtype=np.uint8)
        arr[..., 0] = 255
        m = analyze_quality(Image.fromarray(arr))
        assert m.brightness == pytest.approx(1.0)
        assert m.contrast == 0.0

    def test_noise_averages_channels(self):
        """Noise is the mean of per-channel standard deviations."""
        arr = np.zeros((20, 20, 3), dtype=np.uint8)
        arr[:, :10, 1] = 200
        m = analyze_quality(Image.fromarray(arr))
        green_std = arr[..., 1].astype(float).std(ddof=1)
        assert m.noise == pytest.approx(green_std / 3)

    def test_contrast_of_half_split(self):
        """Half black, half white image has high contrast."""
        arr = np.zeros((20, 20), dtype=np.uint8)
        arr[:, 10:] = 255
        m = analyze_quality(Image.fromarray(arr))
        assert m.contrast > 0.9

    def test_sharpness_vertical_edge(self):
        """A single vertical step edge gives a known gradient sum."""
        arr = np.zeros((10, 10), dtype=np.uint8)
        arr[:, 5:] = 100
        sharpness = compute_sharpness(Image.fromarray(arr))
        # Interior rows 1..8, columns 4 and 5 straddle the edge: dx = 100 each
        expected = (8 * 2 * 100) / (10 * 10)
        assert sharpness == pytest.approx(expected)

    def test_sharpness_tiny_image(self):
        """Images smaller than 3x3 have zero sharpness."""
        img = Image.fromarray(np.array([[0, 255], [255, 0]], dtype=np.uint8))
        assert compute_sharpness(img) == 0.0

    def test_noisy_image_is_sharper_than_flat(self):
        rng = np.random.RandomState(1)
        noisy = Image.fromarray(rng.randint(0, 255, (64, 64), dtype=np.uint8))
        flat = Image.fromarray(np.full((64, 64), 90, dtype=np.uint8))
        assert compute_sharpness(noisy) > compute_sharpness(flat)

    def test_to_dict_keys(self):
        m = QualityMetrics(brightness=0.5, contrast=0.4, sharpness=12.3456789, noise=3.0)
        d = m.to_dict()
        assert set(d) == {"brightness", "contrast", "sharpness", "noise"}
        assert d["sharpness"] == 12.3457


class TestQualityIssues:
    """Test suite for detect_issues and recommendations_for."""

    def test_good_image_has_no_issues(self):
        m = QualityMetrics(brightness=0.5, contrast=0.6, sharpness=40, noise=10)
        assert detect_issues(m) == []

    def test_all_low_issues_in_order(self):
        m = QualityMetrics(brightness=0.1, contrast=0.1, sharpness=5, noise=60)
        assert detect_issues(m) == [
            "Low brightness",
            "Poor contrast",
            "Low sharpness",
            "High noise levels",
        ]

    def test_high_brightness(self):
        m = QualityMetrics(brightness=0.9, contrast=0.6, sharpness=40, noise=10)
        assert detect_issues(m) == ["High brightness"]

    def test_thresholds_are_strict(self):
        """Values exactly at a threshold do not trip it."""
        m = QualityMetrics(brightness=0.3, contrast=0.4, sharpness=30, noise=25)
        assert detect_issues(m) == []

    def test_recommendations_follow_issue_order(self):
        recs = recommendations_for(["Poor contrast", "Low brightness"])
        assert recs == [
            "Adjust X-ray intensity or detector settings",
            "Consider adjusting exposure settings during image capture",
        ]

    def test_unknown_issue_maps_to_empty_string(self):
        assert recommendations_for(["Something else"]) == [""]
