"""
Metrics and Observability for Gatekeeper.

Tracks measurable outcomes across runs:
- Pass rate
- Where tasks get stopped
- Most frequent blocking validators
"""

from gatekeeper.metrics.logger import MetricsLogger, RunMetrics, log_run, metrics_from_verdict

__all__ = ["MetricsLogger", "RunMetrics", "log_run", "metrics_from_verdict"]
