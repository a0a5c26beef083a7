import httpx
import logging
import time
from pathlib import Path
from typing import Any, BinaryIO, Dict, Optional, Tuple, Union

from retinascan.config import settings
from retinascan.middleware.logging_middleware import EVENT_HOOKS
from retinascan.schemas.internal_models import AnalysisResult
from retinascan.schemas.response_schema import unhealthy_status
from retinascan.services.metrics_service import MetricsService

logger = logging.getLogger("APIClient")

ImageUpload = Union[BinaryIO, bytes, Tuple[str, BinaryIO], Tuple[str, BinaryIO, str]]

class ClassifierError(RuntimeError):
    """Raised when the classification server rejects a request or answers with an unusable body."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

def error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        body = {}
    detail = body.get("detail") if isinstance(body, dict) else None
    if detail:
        return detail if isinstance(detail, str) else str(detail)
    return f"Server error: {response.status_code}"

class ClassifierClient:
    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or settings.CLASSIFIER_BASE_URL).rstrip("/")
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, transport=self._transport, event_hooks=EVENT_HOOKS)

    async def analyze_image(self, file: ImageUpload) -> AnalysisResult:
        start = time.time()
        try:
            async with self._client() as client:
                response = await client.post("/predict", files={"file": file})

            if not response.is_success:
                raise ClassifierError(error_message(response), status_code=response.status_code)

            payload = response.json()
            if not isinstance(payload, dict):
                raise ClassifierError(f"Unexpected response body from classifier: {type(payload).__name__}")

            MetricsService.record_latency("classifier", time.time() - start)
            MetricsService.record_success("classifier")
            return AnalysisResult.model_construct(**payload)
        except Exception as e:
            logger.error(f"Error analyzing image: {e}")
            MetricsService.record_error("classifier", type(e).__name__)
            raise

    async def analyze_image_path(self, path: Union[str, Path]) -> AnalysisResult:
        path = Path(path)
        with path.open("rb") as fh:
            return await self.analyze_image((path.name, fh))

    async def check_server_health(self) -> Dict[str, Any]:
        try:
            async with self._client() as client:
                response = await client.get("/health")
            status = response.json()
            if response.is_success:
                MetricsService.record_success("health")
            else:
                MetricsService.record_error("health", f"http_{response.status_code}")
            return status
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            MetricsService.record_error("health", type(e).__name__)
            return unhealthy_status()
