from enum import Enum
from pydantic import BaseModel, ConfigDict
from typing import Any, Dict, Optional

class AnalysisResult(BaseModel):
    # Built with model_construct: the classifier's JSON is trusted, never validated.
    model_config = ConfigDict(frozen=True, extra="allow")

    detailed_classification: Dict[str, float]
    highest_probability_class: str

    def as_payload(self) -> Dict[str, Any]:
        payload = dict(self.__dict__)
        payload.update(self.__pydantic_extra__ or {})
        return payload

class GeminiAssessment(BaseModel):
    model_config = ConfigDict(frozen=True)

    description: str
    cause: str
    remedy: str

class AssessmentSource(str, Enum):
    GEMINI = "GEMINI"
    FALLBACK = "FALLBACK"

class AssessmentOutcome(BaseModel):
    model_config = ConfigDict(frozen=True)

    assessment: GeminiAssessment
    source: AssessmentSource
    reason: Optional[str] = None

    @property
    def used_fallback(self) -> bool:
        return self.source == AssessmentSource.FALLBACK
