"""
Google Cloud Storage uploader module.

Turns discovered files into upload tasks (destination key, content type,
metadata) and uploads them to a bucket with bounded parallelism.
"""

from .uploader import (
    MAX_CONCURRENT_UPLOADS,
    UploadResult,
    UploadTask,
    build_upload_task,
    build_upload_tasks,
    create_bucket,
    guess_content_type,
    upload_all,
    upload_file,
)

__all__ = [
    "MAX_CONCURRENT_UPLOADS",
    "UploadResult",
    "UploadTask",
    "build_upload_task",
    "build_upload_tasks",
    "create_bucket",
    "guess_content_type",
    "upload_all",
    "upload_file",
]
