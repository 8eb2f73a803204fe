"""
Google Cloud Storage upload orchestration.

Builds one UploadTask per discovered file and uploads them with at most
``MAX_CONCURRENT_UPLOADS`` calls in flight. Every upload requests CRC32C
validation. The first failure stops scheduling, waits for uploads already
running, and is then raised as an UploadError.

Example usage:
    >>> from gcs_deploy.uploader import build_upload_tasks, upload_all, create_bucket
    >>> tasks = build_upload_tasks(["index.html"], "/srv/site", "site/v1", {"cacheControl": "no-cache"})
    >>> results = upload_all(create_bucket(config), tasks)
    >>> results[0].destination
    'site/v1/index.html'
"""

import contextvars
import mimetypes
import os
import time
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from google.cloud import storage

from gcs_deploy.errors import UploadError
from gcs_deploy.paths import join_key
from gcs_deploy.utils.config import DeployConfig
from gcs_deploy.utils.logging import get_logger, get_run_id
from gcs_deploy.utils.metrics import DeployMetrics

logger = get_logger(__name__)

MAX_CONCURRENT_UPLOADS = 10
DEFAULT_CONTENT_TYPE = "application/octet-stream"
CHECKSUM = "crc32c"

# Metadata keys that are GCS object properties rather than custom metadata
OBJECT_PROPERTIES = {
    "cacheControl": "cache_control",
    "contentDisposition": "content_disposition",
    "contentEncoding": "content_encoding",
    "contentLanguage": "content_language",
    "contentType": "content_type",
}


@dataclass
class UploadTask:
    """
    One file to upload.

    Attributes:
        relative_path: Path relative to the source root (``/`` separated)
        local_path: Absolute local file path
        destination: Object name in the bucket
        metadata: Object metadata, including ``contentType``
    """

    relative_path: str
    local_path: str
    destination: str
    metadata: Dict[str, str] = field(default_factory=dict)

    @property
    def content_type(self) -> str:
        return self.metadata.get("contentType", DEFAULT_CONTENT_TYPE)


@dataclass
class UploadResult:
    """
    Outcome of a successful upload.

    Attributes:
        local_path: Absolute local file path
        destination: Object name reported by GCS
        file_size_bytes: Size of the uploaded file
        duration_seconds: Time spent in the upload call
    """

    local_path: str
    destination: str
    file_size_bytes: int
    duration_seconds: float


def guess_content_type(path: str) -> str:
    """
    Content type for ``path`` based on its extension.

    Example:
        >>> guess_content_type("style.css")
        'text/css'
        >>> guess_content_type("data.unknownext")
        'application/octet-stream'
    """
    content_type, _ = mimetypes.guess_type(path, strict=False)
    return content_type or DEFAULT_CONTENT_TYPE


def build_upload_task(
    relative_path: str,
    source_root: str,
    remote_prefix: str,
    metadata: Mapping[str, str],
) -> UploadTask:
    """
    Build the UploadTask for one discovered file.

    The inferred content type comes first so a ``contentType`` entry in the
    configured metadata replaces it; no other key touches it.
    """
    task_metadata = {"contentType": guess_content_type(relative_path)}
    task_metadata.update(metadata)
    return UploadTask(
        relative_path=relative_path,
        local_path=os.path.join(source_root, *relative_path.split("/")),
        destination=join_key(remote_prefix, relative_path),
        metadata=task_metadata,
    )


def build_upload_tasks(
    files: Iterable[str],
    source_root: str,
    remote_prefix: str,
    metadata: Mapping[str, str],
) -> List[UploadTask]:
    """Build one UploadTask per relative file path, preserving order."""
    return [build_upload_task(f, source_root, remote_prefix, metadata) for f in files]


def split_metadata(metadata: Mapping[str, str]) -> Tuple[Dict[str, str], Dict[str, str]]:
    """
    Split metadata into GCS object properties and custom metadata.

    Returns:
        (properties keyed by Blob attribute name, custom metadata)
    """
    properties: Dict[str, str] = {}
    custom: Dict[str, str] = {}
    for key, value in metadata.items():
        if key in OBJECT_PROPERTIES:
            properties[OBJECT_PROPERTIES[key]] = value
        else:
            custom[key] = value
    return properties, custom


def create_bucket(config: DeployConfig) -> storage.Bucket:
    """
    Create the bucket handle for a run.

    Uses the configured service-account key file when there is one, and
    application default credentials otherwise.
    """
    if config.credentials_path:
        logger.debug(f"Using service account key: {config.credentials_path}")
        client = storage.Client.from_service_account_json(
            config.credentials_path, project=config.project_id
        )
    else:
        client = storage.Client(project=config.project_id)
    return client.bucket(config.bucket)


def upload_file(
    bucket: storage.Bucket,
    task: UploadTask,
    timeout_seconds: int = 300,
    metrics: Optional[DeployMetrics] = None,
) -> UploadResult:
    """
    Upload a single file with CRC32C validation.

    Args:
        bucket: Destination bucket handle
        task: File to upload
        timeout_seconds: Timeout passed to the storage client
        metrics: Run metrics to record into

    Returns:
        UploadResult for the stored object

    Raises:
        UploadError: Wrapping whatever the local read or storage call raised
    """
    start_time = time.time()
    properties, custom = split_metadata(task.metadata)

    try:
        file_size = os.path.getsize(task.local_path)
        blob = bucket.blob(task.destination)
        for attribute, value in properties.items():
            setattr(blob, attribute, value)
        if custom:
            blob.metadata = custom

        if metrics is not None:
            with metrics.track_upload():
                _upload(blob, task, timeout_seconds)
        else:
            _upload(blob, task, timeout_seconds)
    except Exception as e:
        if metrics is not None:
            metrics.record_upload_failure()
        raise UploadError(task.local_path, task.destination, e) from e

    if metrics is not None:
        metrics.record_upload_success(bytes_uploaded=file_size)

    logger.info(f"{task.relative_path} uploaded to {blob.name}.")
    return UploadResult(
        local_path=task.local_path,
        destination=blob.name,
        file_size_bytes=file_size,
        duration_seconds=time.time() - start_time,
    )


def _upload(blob: storage.Blob, task: UploadTask, timeout_seconds: int) -> None:
    blob.upload_from_filename(
        task.local_path,
        content_type=task.content_type,
        checksum=CHECKSUM,
        timeout=timeout_seconds,
    )


def upload_all(
    bucket: storage.Bucket,
    tasks: List[UploadTask],
    max_workers: int = MAX_CONCURRENT_UPLOADS,
    timeout_seconds: int = 300,
    metrics: Optional[DeployMetrics] = None,
) -> List[UploadResult]:
    """
    Upload every task with at most ``max_workers`` uploads in flight.

    Returns only after all uploads have finished. On the first failure no
    further uploads are started; uploads already running are awaited and the
    first UploadError is raised.

    Args:
        bucket: Destination bucket handle
        tasks: Files to upload
        max_workers: Concurrency cap
        timeout_seconds: Timeout passed to each upload call
        metrics: Run metrics to record into

    Returns:
        UploadResult per task, in completion order

    Raises:
        UploadError: From the first upload that failed
    """
    if not tasks:
        logger.warning("No files to upload")
        return []

    logger.debug(f"Uploading {len(tasks)} files with {max_workers} workers")
    # Pin the run ID before copying contexts so every worker logs the same one
    get_run_id()
    results: List[UploadResult] = []

    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="upload") as pool:
        pending = {
            pool.submit(
                contextvars.copy_context().run,
                upload_file, bucket, task, timeout_seconds, metrics,
            )
            for task in tasks
        }
        while pending:
            done, pending = wait(pending, return_when=FIRST_EXCEPTION)
            failures = [f for f in done if f.exception() is not None]
            results.extend(f.result() for f in done if f.exception() is None)
            if failures:
                cancelled = sum(1 for f in pending if f.cancel())
                logger.error(
                    f"Upload failed, cancelled {cancelled} queued uploads; "
                    f"waiting for uploads in flight"
                )
                wait(pending)
                raise failures[0].exception()

    return results
