"""Public surface: classify a retinal image, explain the label, check server health."""
from typing import Any, Dict

from retinascan.core.api_client import ClassifierClient, ClassifierError, ImageUpload
from retinascan.engines.fallback_engine import get_fallback_assessment
from retinascan.engines.gemini_engine import GeminiEngine
from retinascan.schemas.internal_models import AnalysisResult, GeminiAssessment

__all__ = [
    "ClassifierError",
    "analyze_image",
    "check_server_health",
    "get_fallback_assessment",
    "get_gemini_assessment",
]

async def analyze_image(file: ImageUpload) -> AnalysisResult:
    """Send an image to the classifier. Raises ClassifierError or httpx.HTTPError on failure."""
    return await ClassifierClient().analyze_image(file)

async def get_gemini_assessment(classification: str, probability: float) -> GeminiAssessment:
    """Explain a classification. Never raises; falls back to the static table."""
    return await GeminiEngine().explain(classification, probability)

async def check_server_health() -> Dict[str, Any]:
    return await ClassifierClient().check_server_health()
