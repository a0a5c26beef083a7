import logging
import time
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Any, Optional

import httpx

from retinascan.config import settings
from retinascan.core.assessment_parser import parse_assessment_text
from retinascan.engines.fallback_engine import get_fallback_assessment
from retinascan.middleware.logging_middleware import EVENT_HOOKS
from retinascan.schemas.internal_models import AssessmentOutcome, AssessmentSource, GeminiAssessment
from retinascan.services.metrics_service import MetricsService

logger = logging.getLogger(__name__)

TEMPERATURE = 0.7
MAX_OUTPUT_TOKENS = 500

PROMPT_TEMPLATE = """You are a diabetic retinopathy specialist. A patient's retinal scan has been analyzed and detected as "{classification}" with {probability}% confidence.

Please provide:
1. A professional explanation of this condition in 3-4 lines, explaining what it means for the patient in simple terms.
2. Potential causes for the infection that may have led to this stage of diabetic retinopathy in 2-3 lines.
3. A single line remedy or recommended next step.

Format your response exactly as:
DESCRIPTION: [Your 3-4 line explanation here]
CAUSE: [Your 2-3 line potential causes here]
REMEDY: [Your one line remedy here]"""

def format_percent(probability: float) -> str:
    # Exact ties round away from zero, matching the web client's toFixed(1).
    return str(Decimal(float(probability)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))

def build_prompt(classification: str, probability: float) -> str:
    return PROMPT_TEMPLATE.format(classification=classification, probability=format_percent(probability))

def build_payload(prompt: str) -> Dict[str, Any]:
    return {
        "contents": [{"parts": [{"text": prompt}]}],
        "generationConfig": {"temperature": TEMPERATURE, "maxOutputTokens": MAX_OUTPUT_TOKENS},
    }

def extract_candidate_text(data: Any) -> str:
    """candidates[0].content.parts[0].text, or "" when any level is missing."""
    try:
        text = data["candidates"][0]["content"]["parts"][0]["text"]
    except (KeyError, IndexError, TypeError):
        return ""
    return text if isinstance(text, str) else ""

class GeminiEngine:
    def __init__(
        self,
        api_key: Optional[str] = None,
        api_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else settings.GEMINI_API_KEY
        self.api_url = api_url or settings.GEMINI_API_URL
        self._transport = transport

    async def assess(self, classification: str, probability: float) -> AssessmentOutcome:
        start = time.time()
        try:
            prompt = build_prompt(classification, probability)
            async with httpx.AsyncClient(transport=self._transport, event_hooks=EVENT_HOOKS) as client:
                response = await client.post(
                    self.api_url,
                    params={"key": self.api_key},
                    json=build_payload(prompt),
                )
            MetricsService.record_latency("gemini", time.time() - start)

            if not response.is_success:
                logger.warning(f"Gemini API returned {response.status_code}, using fallback assessment")
                return self._fallback(
                    classification, "http_status", f"http_{response.status_code}", f"Gemini API returned {response.status_code}"
                )

            text = extract_candidate_text(response.json())
            assessment = parse_assessment_text(text)
            MetricsService.record_success("gemini")
            return AssessmentOutcome(assessment=assessment, source=AssessmentSource.GEMINI)
        except Exception as e:
            logger.warning(f"Gemini API unavailable, using fallback assessment: {e}")
            return self._fallback(
                classification, "unavailable", type(e).__name__, f"Gemini API unavailable: {type(e).__name__}"
            )

    async def explain(self, classification: str, probability: float) -> GeminiAssessment:
        outcome = await self.assess(classification, probability)
        return outcome.assessment

    def _fallback(self, classification: str, kind: str, error_type: str, reason: str) -> AssessmentOutcome:
        MetricsService.record_fallback("gemini", kind)
        MetricsService.record_error("gemini", error_type)
        return AssessmentOutcome(
            assessment=get_fallback_assessment(classification),
            source=AssessmentSource.FALLBACK,
            reason=reason,
        )
