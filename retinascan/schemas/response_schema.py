from pydantic import BaseModel
from typing import Dict, Any, Optional
from retinascan.schemas.internal_models import AnalysisResult, GeminiAssessment

UNHEALTHY_STATUS = {"status": "unhealthy", "message": "Could not connect to server"}

def unhealthy_status() -> Dict[str, Any]:
    return dict(UNHEALTHY_STATUS)

class ScreeningReport(BaseModel):
    classification: str
    probability: float
    analysis: Dict[str, Any]
    assessment: Optional[GeminiAssessment] = None
    assessment_source: Optional[str] = None
    metadata: Dict[str, Any]

    @classmethod
    def probability_for(cls, result: AnalysisResult) -> float:
        detailed = getattr(result, "detailed_classification", None) or {}
        label = getattr(result, "highest_probability_class", None)
        value = detailed.get(label, 0.0) if isinstance(detailed, dict) else 0.0
        try:
            value = float(value)
        except (TypeError, ValueError):
            return 0.0
        # The classifier may report either fractions or percentages.
        return value * 100 if value <= 1 else value
