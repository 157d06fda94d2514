"""
MedScope.ai - Text Detection
Runs Tesseract OCR and returns annotations shaped like a vision-API text response.
"""
import logging
from typing import Dict, List

import pytesseract
from PIL import Image
from pytesseract import Output

logger = logging.getLogger(__name__)


class TextDetector:
    """
    OCR over enhanced images.

    The first annotation carries the full text, its locale and the mean
    word confidence; the rest are individual words with bounding boxes.
    """

    def __init__(self, language: str = None, config: str = None):
        from config.settings import OCR_CONFIG, OCR_LANGUAGE

        self.language = language or OCR_LANGUAGE
        self.config = config or OCR_CONFIG
        self._available = None

    def detect(self, image: Image.Image) -> List[Dict]:
        try:
            data = pytesseract.image_to_data(
                image.convert("RGB"),
                lang=self.language,
                config=self.config,
                output_type=Output.DICT,
            )
        except pytesseract.TesseractNotFoundError:
            if self._available is not False:
                logger.warning("Tesseract binary not found. Text detection disabled.")
            self._available = False
            return []

        self._available = True
        return self.build_annotations(data)

    def build_annotations(self, data: Dict[str, list]) -> List[Dict]:
        words = []
        lines: Dict[tuple, List[str]] = {}

        for i, raw in enumerate(data.get("text", [])):
            text = (raw or "").strip()
            conf = float(data["conf"][i])
            if not text or conf < 0:
                continue

            left, top = int(data["left"][i]), int(data["top"][i])
            width, height = int(data["width"][i]), int(data["height"][i])
            words.append({
                "description": text,
                "confidence": round(conf / 100, 4),
                "boundingPoly": {"vertices": [
                    {"x": left, "y": top},
                    {"x": left + width, "y": top},
                    {"x": left + width, "y": top + height},
                    {"x": left, "y": top + height},
                ]},
            })
            key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
            lines.setdefault(key, []).append(text)

        if not words:
            return []

        full_text = "\n".join(" ".join(tokens) for tokens in lines.values())
        mean_conf = sum(w["confidence"] for w in words) / len(words)
        logger.info(f"Detected {len(words)} words (mean confidence {mean_conf:.2f})")

        summary = {
            "description": full_text,
            "locale": self.language,
            "confidence": round(mean_conf, 4),
            "boundingPoly": _enclosing_box(words),
        }
        return [summary] + words

    @property
    def is_available(self):
        """None until the first detection, then whether Tesseract could run."""
        return self._available


def _enclosing_box(words: List[Dict]) -> Dict:
    xs = [v["x"] for w in words for v in w["boundingPoly"]["vertices"]]
    ys = [v["y"] for w in words for v in w["boundingPoly"]["vertices"]]
    x0, x1, y0, y1 = min(xs), max(xs), min(ys), max(ys)
    return {"vertices": [
        {"x": x0, "y": y0},
        {"x": x1, "y": y0},
        {"x": x1, "y": y1},
        {"x": x0, "y": y1},
    ]}
