"""Shared fixtures: an in-memory bucket and local file trees."""

from typing import Iterable

import pytest

from fakes import FakeBucket, write_tree


@pytest.fixture
def fake_bucket() -> FakeBucket:
    return FakeBucket()


@pytest.fixture
def make_tree(tmp_path):
    """Factory building a source tree under a fresh directory."""

    def _make(files: Iterable[str], name: str = "site"):
        root = tmp_path / name
        root.mkdir()
        return write_tree(root, files)

    return _make
