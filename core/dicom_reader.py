"""
MedScope.ai - DICOM Reader
Detects DICOM uploads, extracts study metadata, and renders pixel data to an 8-bit image.
"""
import io
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np
import pydicom
from PIL import Image
from pydicom.errors import InvalidDicomError
from pydicom.multival import MultiValue

from core.errors import DicomProcessingError

logger = logging.getLogger(__name__)

DICOM_MAGIC = b"DICM"
DICOM_MAGIC_OFFSET = 128


@dataclass
class DicomImage:
    image: Image.Image
    metadata: Dict[str, Any]

    def to_png_bytes(self) -> bytes:
        buf = io.BytesIO()
        self.image.save(buf, format="PNG")
        return buf.getvalue()


def is_dicom(data: bytes) -> bool:
    """True if the buffer carries the DICM marker after the 128-byte preamble."""
    end = DICOM_MAGIC_OFFSET + len(DICOM_MAGIC)
    return len(data) > end and data[DICOM_MAGIC_OFFSET:end] == DICOM_MAGIC


def read_dicom(data: bytes) -> DicomImage:
    """
    Parse a DICOM buffer.

    Args:
        data: Raw file bytes.

    Returns:
        DicomImage with a single-channel 8-bit image and JSON-safe metadata.

    Raises:
        DicomProcessingError: If the buffer cannot be parsed or holds no pixel data.
    """
    try:
        ds = pydicom.dcmread(io.BytesIO(data))
    except (InvalidDicomError, EOFError, ValueError) as e:
        raise DicomProcessingError(f"Unable to parse DICOM data: {e}") from e

    try:
        metadata = extract_metadata(ds)
    except (ValueError, TypeError, KeyError) as e:
        raise DicomProcessingError(f"Unable to read DICOM header: {e}") from e
    logger.info(
        f"DICOM parsed (modality={metadata['modality']}, "
        f"bits={metadata['imageQuality']['bitsAllocated']})"
    )

    if "PixelData" not in ds:
        raise DicomProcessingError("No pixel data found in DICOM file")

    try:
        pixels = ds.pixel_array
    except Exception as e:
        raise DicomProcessingError(f"Unable to decode DICOM pixel data: {e}") from e

    image = render_pixels(
        pixels,
        photometric=_as_str(_get(ds, "PhotometricInterpretation")) or "",
        samples_per_pixel=_as_int(_get(ds, "SamplesPerPixel")) or 1,
    )
    return DicomImage(image=image, metadata=metadata)


def extract_metadata(ds) -> Dict[str, Any]:
    """
    Pull the study fields and image-quality tags the analysis response reports.
    Missing or malformed values come back as None.
    """
    return {
        "patientName": _as_str(_get(ds, "PatientName")),
        "patientId": _as_str(_get(ds, "PatientID")),
        "studyDate": _as_str(_get(ds, "StudyDate")),
        "modality": _as_str(_get(ds, "Modality")),
        "manufacturer": _as_str(_get(ds, "Manufacturer")),
        "imageQuality": {
            "bitsAllocated": _as_int(_get(ds, "BitsAllocated")),
            "bitsStored": _as_int(_get(ds, "BitsStored")),
            "windowCenter": _as_float(_get(ds, "WindowCenter")),
            "windowWidth": _as_float(_get(ds, "WindowWidth")),
        },
    }


def render_pixels(pixels: np.ndarray, photometric: str = "",
                  samples_per_pixel: int = 1) -> Image.Image:
    """Normalize raw pixel values to 0-255 and apply the display gamma."""
    from config.settings import DICOM_GAMMA
    from core.enhancer import gamma_lut

    arr = _to_single_plane(np.asarray(pixels), samples_per_pixel).astype(np.float32)
    if arr.size == 0:
        raise DicomProcessingError("No pixel data found in DICOM file")

    if photometric == "MONOCHROME1":
        arr = arr.max() - arr

    arr = (arr - arr.min()) / (arr.max() - arr.min() + 1e-8) * 255
    image = Image.fromarray(np.round(arr).astype(np.uint8))
    return image.point(gamma_lut(DICOM_GAMMA))


def _to_single_plane(arr: np.ndarray, samples_per_pixel: int) -> np.ndarray:
    # pixel_array layout: ([frames,] rows, cols[, samples])
    plane_ndim = 3 if samples_per_pixel > 1 else 2
    if arr.ndim > plane_ndim:
        arr = arr[arr.shape[0] // 2]
    if arr.ndim == 3:
        rgb = arr[..., :3].astype(np.float32)
        return 0.299 * rgb[..., 0] + 0.587 * rgb[..., 1] + 0.114 * rgb[..., 2]
    return arr


def _get(ds, keyword: str):
    # Values are converted on first access; bad DS/IS strings raise here
    try:
        return ds.get(keyword)
    except (ValueError, TypeError) as e:
        logger.warning(f"Ignoring malformed DICOM {keyword}: {e}")
        return None


def _as_str(value) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _first(value):
    if isinstance(value, (list, tuple, MultiValue)):
        return value[0] if len(value) else None
    return value


def _as_int(value) -> Optional[int]:
    value = _first(value)
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


def _as_float(value) -> Optional[float]:
    value = _first(value)
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (ValueError, TypeError):
        return None
