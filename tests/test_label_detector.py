"""
Tests for the CLIP label detector.
"""
import numpy as np
import pytest
from PIL import Image


class TestLabelDetector:
    """Test suite for the LabelDetector class."""

    def setup_method(self):
        from core.label_detector import LabelDetector
        self.detector = LabelDetector(vocabulary=["chest x-ray", "brain mri", "knee ct"])

    def test_mock_mode_when_forced(self):
        """MEDSCOPE_MOCK keeps the model from loading."""
        self.detector.initialize()
        assert self.detector.is_loaded
        assert self.detector.is_mock

    def test_mock_embedding_normalized(self):
        emb = self.detector._mock_embedding()
        assert emb.shape == (512,)
        assert abs(np.linalg.norm(emb) - 1.0) < 1e-5

    def test_mock_embedding_deterministic(self):
        np.testing.assert_array_equal(
            self.detector._mock_embedding(), self.detector._mock_embedding()
        )

    def test_encode_image_accepts_array(self):
        arr = np.random.randint(0, 255, (32, 32), dtype=np.uint8)
        emb = self.detector.encode_image(arr)
        assert emb.shape == (512,)

    def test_encode_text_batch(self):
        result = self.detector.encode_text(["a", "b"])
        assert result.shape == (2, 512)

    def test_detect_returns_nothing_in_mock_mode(self):
        img = Image.new("RGB", (64, 64), (40, 40, 40))
        assert self.detector.detect(img) == []

    def test_rank_labels_orders_by_similarity(self):
        labels = np.eye(3, 8, dtype=np.float32)
        image = np.zeros(8, dtype=np.float32)
        image[1] = 1.0
        image[0] = 0.95
        ranked = self.detector.rank_labels(image, labels, top_k=3, min_score=0.0)
        assert [r["description"] for r in ranked] == ["brain mri", "chest x-ray", "knee ct"]
        assert sum(r["score"] for r in ranked) == pytest.approx(1.0, abs=1e-3)

    def test_rank_labels_respects_top_k_and_min_score(self):
        labels = np.eye(3, 8, dtype=np.float32)
        image = np.zeros(8, dtype=np.float32)
        image[2] = 1.0
        ranked = self.detector.rank_labels(image, labels, top_k=2, min_score=0.5)
        assert ranked == [{"description": "knee ct", "score": pytest.approx(1.0, abs=1e-3)}]
