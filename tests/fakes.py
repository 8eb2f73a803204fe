"""In-memory stand-ins for the storage client used across tests."""

import threading
import time
from pathlib import Path
from typing import Dict, Iterable, List, Optional


class FakeBlob:
    """Stands in for google.cloud.storage.Blob, reporting to its bucket."""

    def __init__(self, bucket: "FakeBucket", name: str):
        self.bucket = bucket
        self.name = name
        self.metadata = None
        self.content_type = None
        self.cache_control = None
        self.content_disposition = None
        self.content_encoding = None
        self.content_language = None

    def upload_from_filename(self, filename, content_type=None, checksum=None, timeout=None):
        self.bucket.enter()
        try:
            if self.bucket.delay:
                time.sleep(self.bucket.delay)
            if self.name in self.bucket.fail_on:
                raise RuntimeError(f"simulated failure for {self.name}")
            with open(filename, "rb") as f:
                data = f.read()
            self.bucket.record(self, filename, data, content_type, checksum, timeout)
        finally:
            self.bucket.leave()


class FakeBucket:
    """
    Thread-safe in-memory bucket.

    Tracks uploaded objects, the order uploads were started in, and the
    highest number of uploads running at the same time.
    """

    def __init__(self, name: str = "test-bucket", delay: float = 0.0,
                 fail_on: Optional[Iterable[str]] = None):
        self.name = name
        self.delay = delay
        self.fail_on = set(fail_on or [])
        self.uploads: Dict[str, dict] = {}
        self.started: List[str] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self._lock = threading.Lock()
        self._current = threading.local()

    def blob(self, name: str) -> FakeBlob:
        return FakeBlob(self, name)

    def enter(self) -> None:
        with self._lock:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)

    def leave(self) -> None:
        with self._lock:
            self.in_flight -= 1

    def record(self, blob, filename, data, content_type, checksum, timeout) -> None:
        with self._lock:
            self.uploads[blob.name] = {
                "filename": filename,
                "data": data,
                "content_type": content_type,
                "checksum": checksum,
                "timeout": timeout,
                "metadata": blob.metadata,
                "cache_control": blob.cache_control,
            }


def write_tree(root: Path, files: Iterable[str]) -> Path:
    """Create each relative ``/``-separated path under root with small content."""
    for relative in files:
        path = root.joinpath(*relative.split("/"))
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"content of {relative}\n")
    return root


