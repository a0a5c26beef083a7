import argparse
import asyncio
import json
import logging
import sys
import time
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from retinascan.config import Config, settings
from retinascan.core.api_client import ClassifierClient
from retinascan.engines.gemini_engine import GeminiEngine
from retinascan.middleware.logging_middleware import setup_logging
from retinascan.schemas.response_schema import ScreeningReport
from retinascan.services.metrics_service import MetricsService, render_metrics

logger = logging.getLogger("ScreeningCLI")

class ScreeningCLI:
    def __init__(self, config: Optional[Config] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config or settings
        self.classifier = ClassifierClient(base_url=self.config.CLASSIFIER_BASE_URL, transport=transport)
        self.gemini_engine = GeminiEngine(
            api_key=self.config.GEMINI_API_KEY,
            api_url=self.config.GEMINI_API_URL,
            transport=transport,
        )

    async def run_single(self, image_path: str, with_assessment: bool = True) -> ScreeningReport:
        start_time = time.time()
        correlation_id = str(uuid.uuid4())
        result = await self.classifier.analyze_image_path(image_path)
        label = getattr(result, "highest_probability_class", None)
        probability = ScreeningReport.probability_for(result)

        assessment = None
        source = None
        if with_assessment and label:
            outcome = await self.gemini_engine.assess(str(label), probability)
            assessment = outcome.assessment
            source = outcome.source.value
            if outcome.used_fallback:
                logger.info(f"[{correlation_id}] Fallback assessment used: {outcome.reason}")

        return ScreeningReport(
            classification=str(label),
            probability=round(probability, 1),
            analysis=result.as_payload(),
            assessment=assessment,
            assessment_source=source,
            metadata={
                "image": image_path,
                "timestamp": datetime.now().isoformat(),
                "correlation_id": correlation_id,
                "latency": round(time.time() - start_time, 4),
                "versions": self.config.VERSION_MANIFEST,
            },
        )

    async def run_batch(self, image_paths: List[str], with_assessment: bool = True) -> List[Any]:
        return await asyncio.gather(
            *[self.run_single(path, with_assessment) for path in image_paths],
            return_exceptions=True,
        )

    def print_report(self, report: ScreeningReport):
        print("\n" + "=" * 50)
        print(" RETINASCAN SCREENING SUMMARY")
        print("=" * 50)
        print(f" IMAGE:           {report.metadata['image']}")
        print(f" CLASSIFICATION:  {report.classification}")
        print(f" CONFIDENCE:      {report.probability}%")
        print(f" LATENCY:         {report.metadata['latency']}s")
        if report.assessment:
            print(f"\nASSESSMENT ({report.assessment_source}):")
            print(f" Description: {report.assessment.description}")
            print(f" Cause:       {report.assessment.cause}")
            print(f" Remedy:      {report.assessment.remedy}")

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="retinascan", description="Diabetic retinopathy screening client")
    parser.add_argument("--base-url", help="Classification server base URL")
    parser.add_argument("--log-level", help="Root log level (default from LOG_LEVEL)")
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")
    parser.add_argument("--metrics", action="store_true", help="Print Prometheus metrics after the command")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("health", help="Query the classification server's /health endpoint")

    analyze = sub.add_parser("analyze", help="Classify one or more retinal images")
    analyze.add_argument("images", nargs="+")
    analyze.add_argument("--no-assessment", action="store_true", help="Skip the explanatory assessment")

    assess = sub.add_parser("assess", help="Explain a classification label")
    assess.add_argument("classification")
    assess.add_argument("probability", type=float)
    return parser

async def main_async(argv: Optional[List[str]] = None, transport: Optional[httpx.AsyncBaseTransport] = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    config = Config(classifier_base_url=args.base_url, log_level=args.log_level)
    cli = ScreeningCLI(config, transport=transport)
    exit_code = 0

    if args.command == "health":
        status = await cli.classifier.check_server_health()
        print(json.dumps(status, indent=2))
        if not isinstance(status, dict) or status.get("status") == "unhealthy":
            exit_code = 1

    elif args.command == "assess":
        outcome = await cli.gemini_engine.assess(args.classification, args.probability)
        if args.json:
            print(outcome.model_dump_json(indent=2))
        else:
            print(f"[{outcome.source.value}] {args.classification}")
            print(f" Description: {outcome.assessment.description}")
            print(f" Cause:       {outcome.assessment.cause}")
            print(f" Remedy:      {outcome.assessment.remedy}")

    elif args.command == "analyze":
        results = await cli.run_batch(args.images, with_assessment=not args.no_assessment)
        for path, result in zip(args.images, results):
            if isinstance(result, Exception):
                print(f"[ERROR] {path}: {type(result).__name__}: {result}", file=sys.stderr)
                exit_code = 1
            elif isinstance(result, BaseException):
                raise result
            elif args.json:
                print(result.model_dump_json(indent=2))
            else:
                cli.print_report(result)

    if args.metrics:
        print(json.dumps(MetricsService.get_health_report(), indent=2))
        print(render_metrics().decode("utf-8"))
    return exit_code

def main():
    try:
        sys.exit(asyncio.run(main_async()))
    except KeyboardInterrupt:
        sys.exit(130)

if __name__ == "__main__":
    main()
