"""
Deploy pipeline: discover files, upload them, announce the deploy.

The configuration, bucket handle and notifier are built once by the caller
and passed in, so the pipeline itself holds no global state.
"""

import json
import os
from dataclasses import dataclass, field
from typing import List, Optional

from gcs_deploy.discovery import discover_files
from gcs_deploy.notifier import SlackNotifier
from gcs_deploy.paths import ResolvedPaths
from gcs_deploy.uploader import UploadResult, UploadTask, build_upload_tasks, upload_all
from gcs_deploy.utils.config import DeployConfig
from gcs_deploy.utils.logging import get_logger
from gcs_deploy.utils.metrics import DeployMetrics

logger = get_logger(__name__)


@dataclass
class DeployOutcome:
    """
    Summary of a finished run.

    Attributes:
        tasks: Upload tasks built from the discovered files
        results: Completed uploads (empty on a dry run)
        notified: Whether a notification was sent
    """

    tasks: List[UploadTask] = field(default_factory=list)
    results: List[UploadResult] = field(default_factory=list)
    notified: bool = False

    @property
    def files_processed(self) -> int:
        return len(self.results)


def resolve_display_name(
    override: Optional[str],
    config: DeployConfig,
    source_root: str,
    package_json: str = "package.json",
) -> str:
    """
    Name used for the deployed project in notifications.

    Order: explicit override, config ``name``, the ``name`` field of
    ``package_json`` if the file exists, then the source root's basename.
    """
    if override:
        return override
    if config.display_name:
        return config.display_name
    if os.path.isfile(package_json):
        try:
            with open(package_json, "r", encoding="utf-8") as f:
                name = json.load(f).get("name")
        except (OSError, ValueError, AttributeError) as e:
            logger.warning(f"Ignoring unreadable {package_json}: {e}")
        else:
            if name:
                return str(name)
    return os.path.basename(os.path.normpath(source_root))


def run_deploy(
    config: DeployConfig,
    paths: ResolvedPaths,
    bucket,
    notifier: SlackNotifier,
    display_name: str,
    metrics: Optional[DeployMetrics] = None,
    dry_run: bool = False,
) -> DeployOutcome:
    """
    Upload the source tree and send the completion notice.

    The notice is sent only after every upload has succeeded; any
    DiscoveryError or UploadError propagates before it.

    Args:
        config: Effective configuration
        paths: Resolved source root and remote locations
        bucket: Destination bucket handle (unused on a dry run)
        notifier: Notification sender
        display_name: Project name for the notice
        metrics: Run metrics to record into
        dry_run: Log the planned uploads without performing them

    Returns:
        DeployOutcome of the run
    """
    files = discover_files(paths.source_root)
    tasks = build_upload_tasks(files, paths.source_root, paths.remote_prefix, config.metadata)
    outcome = DeployOutcome(tasks=tasks)

    logger.info(
        f"Will upload {len(tasks)} files to:\n"
        f"Console-root: {paths.console_root}\n"
        f"Web-root: {paths.web_root}"
    )

    if dry_run:
        for task in tasks:
            logger.info(f"[DRY RUN] Would upload {task.relative_path} to {task.destination} ({task.content_type})")
        return outcome

    try:
        outcome.results = upload_all(
            bucket,
            tasks,
            timeout_seconds=config.timeout_seconds,
            metrics=metrics,
        )
    finally:
        if metrics is not None and config.push_gateway:
            _push_metrics(metrics, config.push_gateway)

    total_bytes = sum(r.file_size_bytes for r in outcome.results)
    logger.info(f"Upload done! {outcome.files_processed} files, {total_bytes:,} bytes")

    outcome.notified = notifier.notify(display_name, paths.web_root)
    return outcome


def _push_metrics(metrics: DeployMetrics, gateway: str) -> None:
    # Metrics are best effort; an unreachable gateway must not mask an upload error.
    try:
        metrics.push(gateway)
    except OSError as e:
        logger.warning(f"Could not push metrics to {gateway}: {e}")
