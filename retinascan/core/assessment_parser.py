import re
from typing import Optional
from retinascan.schemas.internal_models import GeminiAssessment

DEFAULT_DESCRIPTION = "Assessment not available."
DEFAULT_CAUSE = "Cause assessment not available."
DEFAULT_REMEDY = "Please consult with a healthcare professional."

DESCRIPTION_PATTERN = re.compile(r"DESCRIPTION:\s*(.*?)(?=CAUSE:|$)", re.IGNORECASE | re.DOTALL)
CAUSE_PATTERN = re.compile(r"CAUSE:\s*(.*?)(?=REMEDY:|$)", re.IGNORECASE | re.DOTALL)
REMEDY_PATTERN = re.compile(r"REMEDY:\s*(.*)$", re.IGNORECASE | re.DOTALL)

def extract_section(text: Optional[str], pattern: re.Pattern, default: str) -> str:
    if not text:
        return default
    match = pattern.search(text)
    if not match:
        return default
    return match.group(1).strip() or default

def extract_description(text: Optional[str]) -> str:
    return extract_section(text, DESCRIPTION_PATTERN, DEFAULT_DESCRIPTION)

def extract_cause(text: Optional[str]) -> str:
    return extract_section(text, CAUSE_PATTERN, DEFAULT_CAUSE)

def extract_remedy(text: Optional[str]) -> str:
    return extract_section(text, REMEDY_PATTERN, DEFAULT_REMEDY)

def parse_assessment_text(text: Optional[str]) -> GeminiAssessment:
    """Split a DESCRIPTION/CAUSE/REMEDY reply into its sections; never fails."""
    return GeminiAssessment(
        description=extract_description(text),
        cause=extract_cause(text),
        remedy=extract_remedy(text),
    )
