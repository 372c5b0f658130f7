"""
Monitoring and reporting components.
"""

from testpilot.monitoring.logger import get_logger, log_performance_metric, setup_logging

__all__ = [
    "get_logger",
    "log_performance_metric",
    "setup_logging",
]
