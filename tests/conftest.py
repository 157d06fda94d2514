"""
Shared test setup: no model downloads, no generative-model keys.
"""
import io
import os
import re
import sys
from pathlib import Path

import numpy as np
import pydicom
import pytest
from PIL import Image
from pydicom.dataset import Dataset, FileMetaDataset
from pydicom.uid import ExplicitVRLittleEndian, SecondaryCaptureImageStorage, generate_uid

os.environ.setdefault("MEDSCOPE_MOCK", "1")
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


@pytest.fixture(autouse=True)
def offline_models(monkeypatch):
    """Force CLIP into mock mode and the generative client into demo mode."""
    import config.settings as settings
    from core import llm_client

    monkeypatch.setattr(settings, "MOCK_MODELS", True)
    monkeypatch.setattr(settings, "LLM_API_KEY", None)
    llm_client.reset_llm_client()
    yield
    llm_client.reset_llm_client()


@pytest.fixture
def no_ocr(monkeypatch):
    """Replace Tesseract with a run that finds no words."""
    import pytesseract

    def empty_data(*args, **kwargs):
        return {"text": [], "conf": []}

    monkeypatch.setattr(pytesseract, "image_to_data", empty_data)


def make_png(arr: np.ndarray) -> bytes:
    buf = io.BytesIO()
    Image.fromarray(arr).save(buf, format="PNG")
    return buf.getvalue()


def make_dicom(pixels=None, photometric="MONOCHROME2", with_pixels=True) -> bytes:
    """Write a small uncompressed DICOM file to bytes."""
    meta = FileMetaDataset()
    meta.MediaStorageSOPClassUID = SecondaryCaptureImageStorage
    meta.MediaStorageSOPInstanceUID = generate_uid()
    meta.TransferSyntaxUID = ExplicitVRLittleEndian

    ds = Dataset()
    ds.file_meta = meta
    ds.SOPClassUID = SecondaryCaptureImageStorage
    ds.SOPInstanceUID = meta.MediaStorageSOPInstanceUID
    ds.PatientName = "Doe^Jane"
    ds.PatientID = "PID-001"
    ds.StudyDate = "20240115"
    ds.Modality = "CR"
    ds.Manufacturer = "Acme Imaging"
    ds.WindowCenter = [2048, 1024]
    ds.WindowWidth = 4096

    if with_pixels:
        if pixels is None:
            pixels = np.tile(np.arange(64, dtype=np.uint16) * 64, (48, 1))
        ds.Rows, ds.Columns = pixels.shape
        ds.SamplesPerPixel = 1
        ds.PhotometricInterpretation = photometric
        ds.BitsAllocated = 16
        ds.BitsStored = 12
        ds.HighBit = 11
        ds.PixelRepresentation = 0
        ds.PixelData = pixels.astype(np.uint16).tobytes()

    buf = io.BytesIO()
    pydicom.dcmwrite(buf, ds, enforce_file_format=True)
    return buf.getvalue()


@pytest.fixture
def sample_image_bytes():
    """Generate sample image bytes for testing."""
    rng = np.random.RandomState(0)
    return make_png(rng.randint(0, 255, (128, 128, 3), dtype=np.uint8))


@pytest.fixture
def build_dicom():
    """Factory for DICOM test files."""
    return make_dicom


@pytest.fixture
def dicom_bytes():
    return make_dicom()


@pytest.fixture
def malformed_dicom_bytes():
    """DICOM whose WindowCenter is not a decimal string; length is preserved."""
    data = make_dicom()
    match = re.search(rb"2048[0-9.]*\\", data)
    assert match is not None
    start, end = match.span()
    return data[:start] + b"abcdef"[: end - start - 1].ljust(end - start - 1, b"x") + data[end - 1:]
