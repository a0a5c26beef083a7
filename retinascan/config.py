import os
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

DEFAULT_CLASSIFIER_BASE_URL = "https://SairamDev-selfie-dr.hf.space"
DEFAULT_GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/gemini-1.5-flash-latest:generateContent"

class Config:
    def __init__(
        self,
        classifier_base_url: Optional[str] = None,
        gemini_api_key: Optional[str] = None,
        gemini_api_url: Optional[str] = None,
        log_level: Optional[str] = None,
    ):
        self.CLASSIFIER_BASE_URL = (classifier_base_url or os.getenv("CLASSIFIER_BASE_URL") or DEFAULT_CLASSIFIER_BASE_URL).rstrip("/")
        self.GEMINI_API_KEY = gemini_api_key if gemini_api_key is not None else os.getenv("GEMINI_API_KEY", "")
        self.GEMINI_API_URL = gemini_api_url or os.getenv("GEMINI_API_URL") or DEFAULT_GEMINI_API_URL
        self.LOG_LEVEL = (log_level or os.getenv("LOG_LEVEL", "INFO")).upper()

    VERSION_MANIFEST = {
        "client": "1.0.0",
        "prompt_template": "dr-specialist-v1",
        "fallback_table": "dr-5-stage-v1",
    }

settings = Config()
