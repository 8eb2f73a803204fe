"""
Remote path and URL construction.

Object names and URLs are built by joining segments with exactly one ``/``
between them, ignoring missing segments, so an absent version number never
leaves a trailing separator or a literal ``None`` in a key.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from gcs_deploy.utils.config import DeployConfig
from gcs_deploy.utils.logging import get_logger, log_function_call

logger = get_logger(__name__)

WEB_BASE_URL = "https://storage.googleapis.com/"
CONSOLE_BASE_URL = "https://console.cloud.google.com/storage/browser/"


@dataclass(frozen=True)
class ResolvedPaths:
    """
    Where a run reads from and writes to.

    Attributes:
        source_root: Absolute local directory being uploaded
        remote_prefix: Object name prefix (remote path + version number)
        web_root: Public URL of the uploaded tree
        console_root: Cloud console browser URL of the uploaded tree
    """

    source_root: str
    remote_prefix: str
    web_root: str
    console_root: str


def join_key(*segments: Optional[str]) -> str:
    """
    Join object name segments with single ``/`` separators.

    Leading and trailing separators on each segment are dropped, as are
    empty and None segments. Backslashes are treated as separators.

    Example:
        >>> join_key("rel/", "/v1", "sub/b.txt")
        'rel/v1/sub/b.txt'
        >>> join_key("rel", None)
        'rel'
    """
    parts = []
    for segment in segments:
        if segment is None:
            continue
        cleaned = "/".join(
            piece for piece in str(segment).replace("\\", "/").split("/") if piece
        )
        if cleaned:
            parts.append(cleaned)
    return "/".join(parts)


def join_url(base: str, *segments: Optional[str]) -> str:
    """Join segments onto a base URL, keeping the base's scheme intact."""
    path = join_key(*segments)
    base = base.rstrip("/")
    return f"{base}/{path}" if path else base


def resolve_source_root(path: Optional[Union[str, Path]] = None) -> str:
    """Absolute source root; the current working directory when unset."""
    return os.path.abspath(path) if path else os.getcwd()


@log_function_call
def resolve_paths(config: DeployConfig, local_path: Optional[Union[str, Path]] = None) -> ResolvedPaths:
    """
    Resolve the local source root and the remote locations for a run.

    Args:
        config: Effective deploy configuration
        local_path: Local source root override (defaults to cwd)

    Returns:
        ResolvedPaths for the run
    """
    remote_prefix = join_key(config.remote_path, config.version_number)
    return ResolvedPaths(
        source_root=resolve_source_root(local_path),
        remote_prefix=remote_prefix,
        web_root=join_url(WEB_BASE_URL, config.bucket, remote_prefix),
        console_root=join_url(CONSOLE_BASE_URL, config.bucket, remote_prefix),
    )
