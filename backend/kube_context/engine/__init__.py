"""Cluster context engine: snapshot store, anomaly detection and prompt context."""

from .anomaly_detector import AnomalyDetector, AnomalyRule, BUILT_IN_RULES
from .engine import ContextEngine
from .injector import ContextInjector
from .models import (
    Anomaly, ContextQuery, ResourceSnapshot, Severity, ViewSummaryData, is_unhealthy,
)
from .store import ResourceStore

__all__ = [
    'AnomalyDetector',
    'AnomalyRule',
    'BUILT_IN_RULES',
    'ContextEngine',
    'ContextInjector',
    'Anomaly',
    'ContextQuery',
    'ResourceSnapshot',
    'Severity',
    'ViewSummaryData',
    'is_unhealthy',
    'ResourceStore',
]
