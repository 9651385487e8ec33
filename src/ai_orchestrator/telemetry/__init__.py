"""Telemetry module for observability and monitoring."""

from ai_orchestrator.telemetry.logger import RequestContext, get_logger, setup_logging
from ai_orchestrator.telemetry.metrics import OrchestratorMetrics

__all__ = ["get_logger", "setup_logging", "RequestContext", "OrchestratorMetrics"]
