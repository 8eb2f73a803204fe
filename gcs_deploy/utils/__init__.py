"""
Shared utilities for gcs-deploy:
- logging: console/JSON logging with run IDs and call tracing
- config: configuration loading and precedence resolution
- metrics: Prometheus upload metrics
"""

from gcs_deploy.utils.logging import get_logger, log_function_call

__all__ = ["get_logger", "log_function_call"]
