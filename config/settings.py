"""
MedScope.ai — Centralized Configuration
"""
import os
import torch


# ── Logging ─────────────────────────────────────────────────────────────────
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

# ── Device ──────────────────────────────────────────────────────────────────
DEVICE = "cuda" if torch.cuda.is_available() else "cpu"

# ── CLIP Settings (label detection) ─────────────────────────────────────────
CLIP_MODEL_NAME = "ViT-B-32"
CLIP_PRETRAINED = "openai"
CLIP_EMBEDDING_DIM = 512
CLIP_LOAD_TIMEOUT = int(os.environ.get("MEDSCOPE_CLIP_TIMEOUT", 15))
MOCK_MODELS = os.environ.get("MEDSCOPE_MOCK", "").lower() in ("1", "true", "yes")

LABEL_VOCABULARY = [
    "chest X-ray",
    "brain MRI",
    "CT scan",
    "ultrasound image",
    "mammogram",
    "bone fracture X-ray",
    "dental X-ray",
    "knee MRI",
    "retinal fundus photograph",
    "skin lesion photograph",
    "histopathology slide",
    "printed medical report",
]
LABEL_TOP_K = 5
LABEL_MIN_SCORE = 0.1

# ── Generative Model Settings ───────────────────────────────────────────────
# Any OpenAI-compatible endpoint. Gemini is used when a Google key is present.
GEMINI_API_KEY = os.environ.get("GEMINI_API_KEY") or os.environ.get("GOOGLE_API_KEY")
OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY")

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
GEMINI_MODEL_NAME = os.environ.get("MEDSCOPE_GEMINI_MODEL", "gemini-2.0-flash")
OPENAI_MODEL_NAME = os.environ.get("MEDSCOPE_OPENAI_MODEL", "gpt-4o-mini")
LLM_BASE_URL = os.environ.get("MEDSCOPE_LLM_BASE_URL") or (GEMINI_BASE_URL if GEMINI_API_KEY else None)
LLM_API_KEY = GEMINI_API_KEY or OPENAI_API_KEY

LLM_MODEL_NAME = os.environ.get(
    "MEDSCOPE_LLM_MODEL",
    GEMINI_MODEL_NAME if GEMINI_API_KEY else OPENAI_MODEL_NAME,
)
LLM_MAX_NEW_TOKENS = int(os.environ.get("LLM_MAX_TOKENS", 1500))
LLM_TEMPERATURE = float(os.environ.get("LLM_TEMPERATURE", 0.4))
LLM_TIMEOUT = float(os.environ.get("LLM_TIMEOUT", 120))

# ── API Settings ────────────────────────────────────────────────────────────
API_HOST = os.environ.get("HOST", "0.0.0.0")
API_PORT = int(os.environ.get("PORT", 3001))
CORS_ORIGINS = [
    o.strip()
    for o in os.environ.get("CORS_ORIGINS", "http://localhost:8080,http://localhost:8081").split(",")
    if o.strip()
]

# ── Upload Settings ─────────────────────────────────────────────────────────
MAX_UPLOAD_SIZE_MB = int(os.environ.get("MAX_UPLOAD_SIZE_MB", 10))
IMAGE_MIME_TYPES = {"image/jpeg", "image/png", "image/gif", "application/dicom"}
IMAGE_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".dcm"}
DOCUMENT_MIME_TYPES = {"application/pdf"}
DOCUMENT_EXTENSIONS = {".pdf"}

# ── Image Quality Thresholds ────────────────────────────────────────────────
LOW_BRIGHTNESS_THRESHOLD = 0.3
HIGH_BRIGHTNESS_THRESHOLD = 0.7
LOW_CONTRAST_THRESHOLD = 0.4
LOW_SHARPNESS_THRESHOLD = 30
HIGH_NOISE_THRESHOLD = 25

QUALITY_RECOMMENDATIONS = {
    "Low brightness": "Consider adjusting exposure settings during image capture",
    "High brightness": "Consider reducing exposure settings during image capture",
    "Poor contrast": "Adjust X-ray intensity or detector settings",
    "Low sharpness": "Check for motion blur or focus issues",
    "High noise levels": "Consider using noise reduction techniques or updating equipment",
}

# ── Enhancement Parameters ──────────────────────────────────────────────────
ENHANCE_GAMMA = 1.2
ENHANCE_NORMALIZE_CUTOFF = 1  # percent clipped at each end
ENHANCE_BRIGHTNESS_BELOW = 0.4
ENHANCE_BRIGHTNESS_FACTOR = 1.2
ENHANCE_CONTRAST_BELOW = 0.5
ENHANCE_LINEAR_SLOPE = 1.2
ENHANCE_LINEAR_OFFSET = -0.1
ENHANCE_SHARPEN_BELOW = 50
ENHANCE_STRONG_SHARPEN_BELOW = 25
ENHANCE_DENOISE_ABOVE = 20
ENHANCE_UNSHARP_PERCENT = 150
ENHANCE_UNSHARP_THRESHOLD = 2
CLAHE_TILE_PIXELS = 128
CLAHE_STRONG_CONTRAST_BELOW = 0.3

# ── DICOM Settings ──────────────────────────────────────────────────────────
DICOM_GAMMA = 1.2

# ── OCR Settings ────────────────────────────────────────────────────────────
OCR_LANGUAGE = os.environ.get("OCR_LANGUAGE", "eng")
OCR_CONFIG = os.environ.get("OCR_CONFIG", "--psm 3")

# ── Chat Settings ───────────────────────────────────────────────────────────
CHAT_MAX_HISTORY = 10
CHAT_MAX_SESSIONS = 500

# ── Prompts ─────────────────────────────────────────────────────────────────
MEDICAL_SYSTEM_PROMPT = """You are MedScope AI, an expert medical imaging assistant.
You analyze medical images (X-rays, MRIs, CT scans) and medical documents and
provide detailed, evidence-based diagnostic explanations.

Guidelines:
- Provide structured analysis with findings, impressions, and recommendations.
- Use professional medical terminology with plain-language explanations.
- Always note that AI analysis should be verified by qualified medical professionals.

IMPORTANT DISCLAIMER: This is an AI-assisted analysis tool. All findings must be
reviewed and confirmed by a qualified radiologist or physician before clinical use."""

REPORT_PROMPT = """Analyze this medical image and provide a detailed report in the following format:
1. Image Type & Region
2. Key Findings
3. Diagnostic Assessment
4. Patient-Friendly Explanation
Be thorough and specific in your analysis."""

DOCUMENT_REPORT_PROMPT = """Analyze this medical document and provide a detailed report in the following format:
1. Document Type & Scope
2. Key Findings
3. Diagnostic Assessment
4. Patient-Friendly Explanation
Be thorough and specific in your analysis.

Document text:
{text}"""

CHAT_PROMPT = """Given this medical analysis: {analysis}

User question: {question}

Please provide a clear, accurate, and helpful response based on the medical analysis provided."""

SYMPTOM_PROMPT = """As a medical triage expert, analyze these symptoms: "{symptoms}".
Provide a list of potential conditions, their severity (Mild, Moderate, Severe)
and whether the person should consult a doctor or if it can be managed at home.
Limit to 3-4 potential conditions, keep it concise, use bullet points."""
