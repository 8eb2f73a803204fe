"""Recursive listing of the files to deploy."""

import os
from typing import Dict, List, Tuple

from gcs_deploy.errors import DiscoveryError
from gcs_deploy.utils.logging import get_logger, log_function_call

logger = get_logger(__name__)


def is_hidden(name: str) -> bool:
    """Whether a single path segment is hidden (starts with a dot)."""
    return name.startswith(".")


@log_function_call
def discover_files(root: str) -> List[str]:
    """
    List every non-hidden file under ``root``.

    Hidden directories are pruned during the walk, so nothing beneath them
    is listed. Symlinked directories are followed unless they point back at
    one of their own ancestors. Paths are relative to ``root``, use ``/``
    separators and are returned sorted.

    Args:
        root: Local source root

    Returns:
        Sorted relative file paths

    Raises:
        DiscoveryError: If ``root`` is missing, not a directory, or any
            directory under it cannot be read
    """
    if not os.path.exists(root):
        raise DiscoveryError("Source path does not exist", root)
    if not os.path.isdir(root):
        raise DiscoveryError("Source path is not a directory", root)
    if not os.access(root, os.R_OK | os.X_OK):
        raise DiscoveryError("Source path is not readable", root)

    def on_error(error: OSError) -> None:
        raise DiscoveryError(f"Cannot read directory ({error.strerror})", error.filename or root)

    files: List[str] = []
    # Real paths of each walked directory and its ancestors, to break symlink cycles
    ancestry: Dict[str, Tuple[str, ...]] = {root: (os.path.realpath(root),)}
    for current, dirs, names in os.walk(root, onerror=on_error, followlinks=True):
        chain = ancestry.pop(current)
        kept = []
        for name in sorted(d for d in dirs if not is_hidden(d)):
            child = os.path.join(current, name)
            real = os.path.realpath(child)
            if real in chain:
                logger.warning(f"Skipping {child}: symlink loop back to {real}")
                continue
            ancestry[child] = chain + (real,)
            kept.append(name)
        dirs[:] = kept
        relative_dir = os.path.relpath(current, root)
        for name in names:
            if is_hidden(name):
                continue
            relative = name if relative_dir == os.curdir else os.path.join(relative_dir, name)
            files.append(relative.replace(os.sep, "/"))

    files.sort()
    logger.debug(f"Discovered {len(files)} files under {root}")
    return files
