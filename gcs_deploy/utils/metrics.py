"""
Prometheus metrics for deploy runs.

A deploy is a short-lived batch job, so metrics live on a private registry
and are pushed to a Pushgateway at the end of the run when one is configured.

Metrics Provided:
    - gcs_deploy_uploads_total: Counter of uploads by status
    - gcs_deploy_upload_bytes_total: Counter of uploaded bytes
    - gcs_deploy_upload_duration_seconds: Histogram of per-file upload time

Usage:
    >>> metrics = DeployMetrics()
    >>> with metrics.track_upload():
    ...     blob.upload_from_filename(path)
    >>> metrics.record_upload_success(bytes_uploaded=1024)
    >>> metrics.push("pushgateway:9091")
"""

import os
from contextlib import contextmanager
from typing import Iterator, Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, push_to_gateway

from gcs_deploy.utils.logging import get_logger

logger = get_logger(__name__)

JOB_NAME = "gcs_deploy"


class DeployMetrics:
    """
    Upload metrics for a single deploy run.

    Safe to use from the upload worker threads; prometheus_client metrics
    are thread-safe.
    """

    def __init__(self, enabled: Optional[bool] = None) -> None:
        """
        Args:
            enabled: Record metrics; defaults to the METRICS_ENABLED env var (true)
        """
        if enabled is None:
            enabled = os.getenv("METRICS_ENABLED", "true").lower() == "true"
        self.enabled = enabled
        self.registry = CollectorRegistry()

        self.uploads = Counter(
            name="gcs_deploy_uploads_total",
            documentation="Total number of file uploads",
            labelnames=["status"],  # success, failure
            registry=self.registry,
        )
        self.upload_bytes = Counter(
            name="gcs_deploy_upload_bytes_total",
            documentation="Total bytes uploaded to GCS",
            registry=self.registry,
        )
        self.upload_duration = Histogram(
            name="gcs_deploy_upload_duration_seconds",
            documentation="Time spent uploading a single file",
            buckets=[0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0],
            registry=self.registry,
        )

    @contextmanager
    def track_upload(self) -> Iterator[None]:
        """Time the enclosed upload call."""
        if not self.enabled:
            yield
            return
        with self.upload_duration.time():
            yield

    def record_upload_success(self, bytes_uploaded: int) -> None:
        if not self.enabled:
            return
        self.uploads.labels(status="success").inc()
        self.upload_bytes.inc(bytes_uploaded)

    def record_upload_failure(self) -> None:
        if not self.enabled:
            return
        self.uploads.labels(status="failure").inc()

    def push(self, gateway: str, job: str = JOB_NAME) -> None:
        """
        Push the run's metrics to a Prometheus Pushgateway.

        Args:
            gateway: Pushgateway address (host:port or URL)
            job: Job label for the pushed group
        """
        if not self.enabled:
            logger.debug("Metrics disabled, not pushing")
            return
        logger.info(f"Pushing metrics to {gateway}")
        push_to_gateway(gateway, job=job, registry=self.registry)
