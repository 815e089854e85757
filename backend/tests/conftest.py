import pytest

from kube_context.config import ContextEngineConfig
from kube_context.engine.engine import ContextEngine
from kube_context.utils.scheduler import ManualScheduler


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def engine(scheduler) -> ContextEngine:
    """Engine with anomaly detection on and a manual clock for reconciliation."""
    config = ContextEngineConfig(token_budget=2000, summaries_enabled=True, anomaly_detection_enabled=True)
    return ContextEngine(config, scheduler=scheduler)
