import pytest

from retinascan.services.metrics_service import MetricsService


@pytest.fixture(autouse=True)
def reset_metrics():
    """Keep the rolling health history independent between tests."""
    MetricsService.reset()
    yield
    MetricsService.reset()
