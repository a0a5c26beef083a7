import asyncio
import json

import httpx

from retinascan.core.assessment_parser import DEFAULT_CAUSE, DEFAULT_DESCRIPTION, DEFAULT_REMEDY
from retinascan.engines import gemini_engine
from retinascan.engines.fallback_engine import get_fallback_assessment
from retinascan.engines.gemini_engine import GeminiEngine, build_prompt, extract_candidate_text, format_percent
from retinascan.schemas.internal_models import AssessmentSource
from retinascan.services.metrics_service import MetricsService

API_URL = "https://gemini.test/v1beta/models/mock:generateContent"


def _gemini_body(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


def _engine(handler, api_key: str = "test-key") -> GeminiEngine:
    return GeminiEngine(api_key=api_key, api_url=API_URL, transport=httpx.MockTransport(handler))


def test_parses_successful_response():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_gemini_body("DESCRIPTION: A\nCAUSE: B\nREMEDY: C"))

    outcome = asyncio.run(_engine(handler).assess("Mild", 87.25))
    assert outcome.source == AssessmentSource.GEMINI
    assert not outcome.used_fallback
    assert outcome.assessment.description == "A"
    assert outcome.assessment.cause == "B"
    assert outcome.assessment.remedy == "C"


def test_request_shape():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["method"] = request.method
        captured["key"] = request.url.params.get("key")
        captured["url"] = str(request.url.copy_remove_param("key"))
        captured["body"] = json.loads(request.content)
        return httpx.Response(200, json=_gemini_body("DESCRIPTION: A\nCAUSE: B\nREMEDY: C"))

    asyncio.run(_engine(handler, api_key="secret").assess("Moderate", 64.56))
    assert captured["method"] == "POST"
    assert captured["key"] == "secret"
    assert captured["url"] == API_URL
    assert captured["body"]["generationConfig"] == {"temperature": 0.7, "maxOutputTokens": 500}
    prompt = captured["body"]["contents"][0]["parts"][0]["text"]
    assert '"Moderate" with 64.6% confidence' in prompt
    assert "DESCRIPTION:" in prompt and "CAUSE:" in prompt and "REMEDY:" in prompt


def test_missing_cause_section_uses_default():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=_gemini_body("DESCRIPTION: A\nREMEDY: C"))

    assessment = asyncio.run(_engine(handler).explain("Mild", 50))
    assert assessment.cause == DEFAULT_CAUSE
    assert assessment.remedy == "C"


def test_non_success_status_returns_fallback():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(403, json={"error": {"message": "API key not valid"}})

    outcome = asyncio.run(_engine(handler, api_key="").assess("Severe", 91.0))
    assert outcome.source == AssessmentSource.FALLBACK
    assert outcome.reason == "Gemini API returned 403"
    assert outcome.assessment == get_fallback_assessment("Severe")


def test_non_success_status_for_unknown_label_uses_generic_fallback():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500)

    assessment = asyncio.run(_engine(handler).explain("Stage Z", 12.0))
    assert assessment == get_fallback_assessment("Stage Z")
    assert "Stage Z" in assessment.description


def test_network_error_returns_fallback():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    outcome = asyncio.run(_engine(handler).assess("Mild", 70.0))
    assert outcome.used_fallback
    assert outcome.reason == "Gemini API unavailable: ConnectError"
    assert outcome.assessment == get_fallback_assessment("Mild")


def test_malformed_json_returns_fallback():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, content=b"<html>not json</html>")

    outcome = asyncio.run(_engine(handler).assess("No DR", 99.0))
    assert outcome.used_fallback
    assert outcome.assessment == get_fallback_assessment("No DR")


def test_structurally_empty_response_yields_field_defaults():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"candidates": []})

    outcome = asyncio.run(_engine(handler).assess("Mild", 70.0))
    assert outcome.source == AssessmentSource.GEMINI
    assert outcome.assessment.description == DEFAULT_DESCRIPTION
    assert outcome.assessment.cause == DEFAULT_CAUSE
    assert outcome.assessment.remedy == DEFAULT_REMEDY


def test_invalid_probability_never_raises():
    def handler(request: httpx.Request) -> httpx.Response:
        raise AssertionError("no request expected")

    outcome = asyncio.run(_engine(handler).assess("Mild", "not-a-number"))
    assert outcome.used_fallback


def test_concurrent_calls_are_independent():
    def handler(request: httpx.Request) -> httpx.Response:
        prompt = json.loads(request.content)["contents"][0]["parts"][0]["text"]
        if '"Severe"' in prompt:
            return httpx.Response(503)
        return httpx.Response(200, json=_gemini_body("DESCRIPTION: ok\nCAUSE: ok\nREMEDY: ok"))

    engine = _engine(handler)

    async def run():
        return await asyncio.gather(engine.assess("Mild", 10), engine.assess("Severe", 20))

    mild, severe = asyncio.run(run())
    assert mild.source == AssessmentSource.GEMINI
    assert severe.source == AssessmentSource.FALLBACK


def test_extract_candidate_text_is_defensive():
    assert extract_candidate_text({}) == ""
    assert extract_candidate_text(None) == ""
    assert extract_candidate_text({"candidates": [{"content": {}}]}) == ""
    assert extract_candidate_text({"candidates": [{"content": {"parts": [{"text": 5}]}}]}) == ""
    assert extract_candidate_text(_gemini_body("hi")) == "hi"


def test_build_prompt_formats_one_decimal():
    assert "with 33.3% confidence" in build_prompt("Mild", 33.333)
    assert "with 100.0% confidence" in build_prompt("Mild", 100)


def test_exact_ties_round_up_in_prompt():
    assert format_percent(64.25) == "64.3"
    assert format_percent(12.75) == "12.8"
    assert "with 64.3% confidence" in build_prompt("Moderate", 64.25)


def test_format_percent_uses_the_binary_value():
    # 1.45 is stored just below the tie, 0.05 just above it.
    assert format_percent(1.45) == "1.4"
    assert format_percent(0.05) == "0.1"
    assert format_percent(0) == "0.0"


def test_defaults_come_from_settings(monkeypatch):
    monkeypatch.setattr(gemini_engine.settings, "GEMINI_API_KEY", "from-settings")
    engine = GeminiEngine()
    assert engine.api_key == "from-settings"
    assert engine.api_url == gemini_engine.settings.GEMINI_API_URL


def test_fallback_is_reported_as_degraded_not_failed():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(503)

    asyncio.run(_engine(handler).assess("Mild", 40.0))
    report = MetricsService.get_health_report()["gemini"]
    assert report["status"] == "DEGRADED"
    assert report["fallback_rate"] == "100.0%"
    assert report["error_rate"] == "0.0%"
