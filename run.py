"""
MedScope.ai — Quick Start Launcher
Run this script to start the server: python run.py
"""
import sys
from pathlib import Path

# Add project root to path
PROJECT_ROOT = Path(__file__).resolve().parent
sys.path.insert(0, str(PROJECT_ROOT))


def main():
    from config.settings import API_PORT

    print()
    print("=" * 60)
    print("  MedScope.ai — Medical Image Analysis & Reporting")
    print("=" * 60)
    print()
    print("    - Pillow / OpenCV  : Quality Metrics & Enhancement")
    print("    - pydicom          : DICOM Extraction")
    print("    - Tesseract + CLIP : Text & Label Detection")
    print("    - Gemini / OpenAI  : Narrative Reports & Chat")
    print("    - FastAPI          : Web Server")
    print()
    print("  Starting server...")
    print(f"  Open: http://localhost:{API_PORT}/docs")
    print("=" * 60)
    print()

    from app.main import run
    run()


if __name__ == "__main__":
    main()
