"""
MedScope.ai - Analysis Engine
Top-level API over the analysis pipeline and the generative report client.
"""
import logging
import threading
import time
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class AnalysisEngine:
    """
    Shared engine used by the API.
    Tags each request with a query id and reports component health.
    """

    def __init__(self):
        from core.pipeline import AnalysisPipeline
        self._pipeline = AnalysisPipeline()
        self._initialized = False
        self._query_count = 0
        self._lock = threading.Lock()

    def initialize(self):
        """Pre-initialize all models. Call this at startup for faster first query."""
        if self._initialized:
            return
        logger.info("Initializing analysis engine...")
        self._pipeline.initialize()
        self._initialized = True
        logger.info("Analysis engine ready")

    def _next_query_id(self, prefix: str) -> str:
        with self._lock:
            self._query_count += 1
            return f"{prefix}_{self._query_count:06d}"

    def analyze(self, data: bytes, is_dicom_upload: bool = False) -> Dict[str, Any]:
        """
        Analyze an uploaded medical image.

        Args:
            data: Raw upload bytes (PNG, JPEG, GIF or DICOM).
            is_dicom_upload: Upload was flagged DICOM by extension or MIME type.

        Returns:
            Analysis dict (see AnalysisPipeline.run) plus queryId and processingTime.
        """
        start_time = time.time()
        query_id = self._next_query_id("a")
        logger.info(f"[{query_id}] Analyzing {len(data)} bytes (dicom={is_dicom_upload})")

        try:
            result = self._pipeline.run(data, is_dicom_upload)
        except Exception as e:
            logger.error(f"[{query_id}] Error: {e}")
            raise

        result["queryId"] = query_id
        result["processingTime"] = round(time.time() - start_time, 2)
        logger.info(f"[{query_id}] Done in {result['processingTime']}s")
        return result

    def generate_report(self, data: bytes, is_dicom_upload: bool = False,
                        is_document: bool = False, api_key: Optional[str] = None) -> Dict[str, Any]:
        """
        Write a narrative diagnostic report for an image or PDF document.

        Returns:
            Dict with report, mode ("image" or "document"), model and queryId.
        """
        from core.llm_client import get_llm_client

        start_time = time.time()
        query_id = self._next_query_id("r")
        client = get_llm_client(api_key)

        if is_document:
            from core.document import extract_pdf_text
            logger.info(f"[{query_id}] Generating report from document")
            report = client.generate_document_report(extract_pdf_text(data))
            mode = "document"
        else:
            logger.info(f"[{query_id}] Generating report from image")
            image_bytes, _ = self._pipeline.prepare(data, is_dicom_upload)
            report = client.generate_report(image_bytes, _sniff_mime(image_bytes))
            mode = "image"

        logger.info(f"[{query_id}] Report ready in {round(time.time() - start_time, 2)}s")
        return {
            "report": report,
            "mode": mode,
            "model": "demo" if client.is_demo else client.model_name,
            "queryId": query_id,
        }

    def get_status(self) -> Dict[str, Any]:
        """Get engine status and component health."""
        status = {
            "engine": "MedScope Analysis Engine v1.0",
            "initialized": self._initialized,
            "total_queries": self._query_count,
        }
        if self._initialized:
            status["pipeline"] = self._pipeline.get_status()
        return status


def _sniff_mime(data: bytes) -> str:
    if data[:3] == b"\xff\xd8\xff":
        return "image/jpeg"
    if data[:6] in (b"GIF87a", b"GIF89a"):
        return "image/gif"
    return "image/png"
