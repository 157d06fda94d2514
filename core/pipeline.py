"""
MedScope.ai - Analysis Pipeline
Orchestrates DICOM extraction, quality scoring, enhancement, and text/label detection.
"""
import base64
import logging
from typing import Any, Dict, Optional

from core.errors import AnalysisError, DicomProcessingError, MedScopeError

logger = logging.getLogger(__name__)

INVALID_DICOM_MESSAGE = "Invalid DICOM file format. Please ensure the file is a valid DICOM image."
ANALYSIS_FAILED_MESSAGE = "Failed to analyze image. Please ensure the file is a valid medical image."


class AnalysisPipeline:
    """
    Per-upload workflow:
    DICOM extraction -> Quality Metrics -> Issues -> Enhancement -> Text & Label Detection.
    """

    def __init__(self):
        self._enhancer = None
        self._text_detector = None
        self._label_detector = None
        self._initialized = False

    def initialize(self):
        """Initialize all pipeline components."""
        if self._initialized:
            return

        from core.enhancer import ImageEnhancer
        from core.label_detector import LabelDetector
        from core.text_detector import TextDetector

        logger.info("Initializing MedScope analysis pipeline...")

        self._enhancer = ImageEnhancer()
        self._text_detector = TextDetector()
        self._label_detector = LabelDetector()
        self._label_detector.initialize()

        self._initialized = True
        logger.info("MedScope analysis pipeline initialized successfully")

    def prepare(self, data: bytes, is_dicom_upload: bool = False):
        """
        Turn an upload into displayable image bytes.

        Returns:
            (image bytes, DICOM metadata or None). DICOM pixel data is
            rendered to PNG; other uploads pass through unchanged.
        """
        from core.dicom_reader import is_dicom, read_dicom

        if not (is_dicom_upload or is_dicom(data)):
            return data, None

        logger.info("Processing DICOM file...")
        try:
            dicom = read_dicom(data)
        except DicomProcessingError as e:
            logger.error(f"DICOM processing error: {e}")
            raise DicomProcessingError(INVALID_DICOM_MESSAGE) from e
        logger.info(f"Extracted DICOM metadata: {dicom.metadata}")
        return dicom.to_png_bytes(), dicom.metadata

    def run(self, data: bytes, is_dicom_upload: bool = False) -> Dict[str, Any]:
        """
        Execute the full analysis.

        Args:
            data: Uploaded file bytes.
            is_dicom_upload: The upload was flagged DICOM by name or MIME type.

        Returns:
            Dict with keys: enhancedImage, enhancedImageMimeType, originalQuality,
            qualityIssues, annotations, labels, metadata, confidence, recommendations.
        """
        self.initialize()

        image_bytes, metadata = self.prepare(data, is_dicom_upload)

        try:
            return self._analyze(image_bytes, metadata)
        except MedScopeError:
            raise
        except Exception as e:
            logger.error(f"Analysis error: {e}", exc_info=True)
            raise AnalysisError(ANALYSIS_FAILED_MESSAGE) from e

    def _analyze(self, image_bytes: bytes, metadata: Optional[Dict]) -> Dict[str, Any]:
        from core.enhancer import load_image
        from core.quality import analyze_quality, detect_issues, recommendations_for

        # Step 1: Quality metrics on the original image
        logger.info("Step 1: Analyzing image quality...")
        image = load_image(image_bytes)
        quality = analyze_quality(image)
        issues = detect_issues(quality)

        # Step 2: Adaptive enhancement
        logger.info("Step 2: Enhancing image...")
        enhanced_bytes, enhanced_mime = self._enhancer.enhance_bytes(image_bytes, quality)
        enhanced = load_image(enhanced_bytes)

        # Step 3: Text detection
        logger.info("Step 3: Detecting text...")
        annotations = self._text_detector.detect(enhanced)

        # Step 4: Label detection
        logger.info("Step 4: Detecting labels...")
        labels = self._label_detector.detect(enhanced)

        confidence = annotations[0]["confidence"] if annotations else 0.0

        result = {
            "enhancedImage": base64.b64encode(enhanced_bytes).decode("ascii"),
            "enhancedImageMimeType": enhanced_mime,
            "originalQuality": quality.to_dict(),
            "qualityIssues": issues,
            "annotations": annotations,
            "labels": labels,
            "metadata": metadata,
            "confidence": confidence,
            "recommendations": recommendations_for(issues),
        }
        logger.info(f"Pipeline complete. Issues: {issues or 'none'}")
        return result

    def get_status(self) -> Dict[str, Any]:
        """Return the current status of all pipeline components."""
        status = {
            "initialized": self._initialized,
            "components": {},
        }

        if self._initialized:
            status["components"] = {
                "label_detector": {
                    "loaded": self._label_detector.is_loaded,
                    "mock": self._label_detector.is_mock,
                    "model": self._label_detector.model_name,
                    "labels": len(self._label_detector.vocabulary),
                },
                "text_detector": {
                    "available": self._text_detector.is_available,
                    "language": self._text_detector.language,
                },
                "enhancer": {"loaded": True},
            }

        return status
