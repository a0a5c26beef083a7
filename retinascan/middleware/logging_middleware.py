import logging
import time
import httpx
from retinascan.config import settings

def setup_logging(level: str = None):
    level = level or settings.LOG_LEVEL
    try:
        from pythonjsonlogger import jsonlogger
        handler = logging.StreamHandler()
        formatter = jsonlogger.JsonFormatter("%(asctime)s %(name)s %(levelname)s %(message)s")
        handler.setFormatter(formatter)
        root = logging.getLogger()
        if root.hasHandlers():
            root.handlers.clear()
        root.addHandler(handler)
        root.setLevel(level)
    except ImportError:
        logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")

def redact_url(url: httpx.URL) -> str:
    if "key" not in url.params:
        return str(url)
    return str(url.copy_set_param("key", "***"))

async def log_request(request: httpx.Request):
    logger = logging.getLogger("Outbound")
    request.extensions["retinascan_start"] = time.time()
    logger.info(f"Outbound Request: {request.method} {redact_url(request.url)}")

async def log_response(response: httpx.Response):
    logger = logging.getLogger("Outbound")
    start = response.request.extensions.get("retinascan_start")
    elapsed = time.time() - start if start else 0.0
    logger.info(f"Response Received: {response.status_code} {redact_url(response.request.url)} (Time: {elapsed:.4f}s)")

EVENT_HOOKS = {"request": [log_request], "response": [log_response]}
