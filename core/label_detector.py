"""
MedScope.ai — CLIP Label Detector
Wraps OpenCLIP for zero-shot labelling of medical images against a fixed vocabulary.
"""
import logging
from typing import Dict, List, Union

import numpy as np
import torch
from PIL import Image

logger = logging.getLogger(__name__)


class LabelDetector:
    """Scores an image against text labels in CLIP's shared embedding space."""

    def __init__(self, model_name: str = None, pretrained: str = None, device: str = None,
                 vocabulary: List[str] = None):
        from config.settings import (
            CLIP_EMBEDDING_DIM, CLIP_MODEL_NAME, CLIP_PRETRAINED, DEVICE, LABEL_VOCABULARY,
        )

        self.model_name = model_name or CLIP_MODEL_NAME
        self.pretrained = pretrained or CLIP_PRETRAINED
        self.device = device or DEVICE
        self.embedding_dim = CLIP_EMBEDDING_DIM
        self.vocabulary = list(vocabulary or LABEL_VOCABULARY)
        self._model = None
        self._preprocess = None
        self._tokenizer = None
        self._label_embeddings = None

    def _load_model(self):
        """Lazy-load the CLIP model with a timeout to avoid long hangs."""
        if self._model is not None:
            return

        import threading
        from config.settings import CLIP_LOAD_TIMEOUT, MOCK_MODELS

        if MOCK_MODELS:
            logger.info("Mock mode forced via MEDSCOPE_MOCK env var")
            self._model = "mock"
            return

        result = {"model": None, "preprocess": None, "tokenizer": None, "error": None}

        def _do_load():
            try:
                import open_clip
                model, _, preprocess = open_clip.create_model_and_transforms(
                    self.model_name, pretrained=self.pretrained
                )
                tokenizer = open_clip.get_tokenizer(self.model_name)
                result["model"] = model.to(self.device).eval()
                result["preprocess"] = preprocess
                result["tokenizer"] = tokenizer
            except Exception as e:
                result["error"] = e

        logger.info(f"Loading CLIP model: {self.model_name} (timeout: {CLIP_LOAD_TIMEOUT}s)...")
        load_thread = threading.Thread(target=_do_load, daemon=True)
        load_thread.start()
        load_thread.join(timeout=CLIP_LOAD_TIMEOUT)

        if result["model"] is not None:
            self._model = result["model"]
            self._preprocess = result["preprocess"]
            self._tokenizer = result["tokenizer"]
            logger.info(f"CLIP model loaded on {self.device}")
        else:
            reason = result["error"] or "Timed out (model download may be required)"
            logger.warning(f"CLIP model unavailable: {reason}. Label detection disabled.")
            self._model = "mock"

    def initialize(self):
        self._load_model()

    @torch.no_grad()
    def encode_image(self, image: Union[Image.Image, np.ndarray]) -> np.ndarray:
        """
        Encode an image into a normalized CLIP embedding of shape (embedding_dim,).
        """
        self._load_model()

        if isinstance(image, np.ndarray):
            image = Image.fromarray(image)
        image = image.convert("RGB")

        if self._model == "mock":
            return self._mock_embedding()

        preprocessed = self._preprocess(image).unsqueeze(0).to(self.device)
        embedding = self._model.encode_image(preprocessed)
        embedding = embedding / embedding.norm(dim=-1, keepdim=True)
        return embedding.cpu().numpy().flatten()

    @torch.no_grad()
    def encode_text(self, text: Union[str, List[str]]) -> np.ndarray:
        """Encode one or more label prompts into normalized embeddings of shape (n, dim)."""
        self._load_model()

        if isinstance(text, str):
            text = [text]

        if self._model == "mock":
            return np.stack([self._mock_embedding() for _ in text])

        tokens = self._tokenizer(text).to(self.device)
        embeddings = self._model.encode_text(tokens)
        embeddings = embeddings / embeddings.norm(dim=-1, keepdim=True)
        return embeddings.cpu().numpy()

    def detect(self, image: Image.Image, top_k: int = None, min_score: float = None) -> List[Dict]:
        """
        Label an image.

        Returns:
            Up to ``top_k`` dicts ``{"description", "score"}`` sorted by score,
            each with a softmax score of at least ``min_score``. Empty in mock mode.
        """
        from config.settings import LABEL_MIN_SCORE, LABEL_TOP_K

        self._load_model()
        if self.is_mock:
            return []

        if self._label_embeddings is None:
            prompts = [f"a medical image: {label}" for label in self.vocabulary]
            self._label_embeddings = self.encode_text(prompts)

        image_embedding = self.encode_image(image)
        return self.rank_labels(
            image_embedding,
            self._label_embeddings,
            top_k=top_k or LABEL_TOP_K,
            min_score=LABEL_MIN_SCORE if min_score is None else min_score,
        )

    def rank_labels(self, image_embedding: np.ndarray, label_embeddings: np.ndarray,
                    top_k: int, min_score: float) -> List[Dict]:
        """Softmax over scaled cosine similarities, filtered and sorted."""
        img = image_embedding / (np.linalg.norm(image_embedding) + 1e-8)
        labels = label_embeddings / (np.linalg.norm(label_embeddings, axis=1, keepdims=True) + 1e-8)
        logits = 100.0 * labels @ img
        logits = logits - logits.max()
        probs = np.exp(logits) / np.exp(logits).sum()

        order = np.argsort(-probs)[:top_k]
        return [
            {"description": self.vocabulary[i], "score": round(float(probs[i]), 4)}
            for i in order
            if probs[i] >= min_score
        ]

    def _mock_embedding(self) -> np.ndarray:
        """Return a deterministic mock embedding for demo/testing."""
        rng = np.random.RandomState(42)
        emb = rng.randn(self.embedding_dim).astype(np.float32)
        return emb / (np.linalg.norm(emb) + 1e-8)

    @property
    def is_loaded(self) -> bool:
        return self._model is not None

    @property
    def is_mock(self) -> bool:
        return isinstance(self._model, str) and self._model == "mock"
