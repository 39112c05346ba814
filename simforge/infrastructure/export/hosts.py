"""
Local filesystem hosts for the persistence strategies.

DirectoryPickerHost plays the part of a save-file picker: a ``choose``
callback maps the suggested filename to a destination (or None to cancel),
and writes go through a temporary file that only replaces the destination
when the stream is closed.

DownloadDirectoryHost plays the part of a browser without a picker: object
URLs point into an in-memory table and clicking a link "downloads" the blob
into a directory, numbering the name if it is already taken.
"""

from __future__ import annotations

import os
import tempfile
import uuid
from pathlib import Path
from typing import Callable, Optional

from simforge.infrastructure.export.persistence import Blob, PersistenceError, SaveCancelled
from simforge.utils.logging import get_logger

logger = get_logger("export.hosts")


# ============================================================================
# Picker host
# ============================================================================


class AtomicFileStream:
    """Writable stream that commits to ``path`` on close, never before."""

    def __init__(self, path: Path):
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent,
            prefix=f".{self.path.name}.",
            suffix=".tmp",
        )
        self._tmp_path = Path(tmp_name)
        self._file = os.fdopen(fd, "wb")

    async def write(self, data: str | bytes) -> None:
        if isinstance(data, str):
            data = data.encode("utf-8")
        self._file.write(data)

    async def close(self) -> None:
        self._file.close()
        try:
            os.replace(self._tmp_path, self.path)
        except OSError:
            self._tmp_path.unlink(missing_ok=True)
            raise

    async def abort(self) -> None:
        self._file.close()
        self._tmp_path.unlink(missing_ok=True)


class LocalFileHandle:
    def __init__(self, path: Path):
        self.path = path

    async def create_writable(self) -> AtomicFileStream:
        return AtomicFileStream(self.path)


class DirectoryPickerHost:
    """Save picker backed by a callback that chooses the destination.

    ``choose`` may return a file path, or a directory (an existing one, or
    any path without a suffix) to save under the suggested name.

    Usage:
        host = DirectoryPickerHost(lambda name: Path("exports") / name)
    """

    def __init__(self, choose: Callable[[str], Optional[Path | str]]):
        self._choose = choose

    async def show_save_file_picker(
        self,
        *,
        suggested_name: str,
        types: list[dict] | None = None,
    ) -> LocalFileHandle:
        chosen = self._choose(suggested_name)
        if chosen is None:
            raise SaveCancelled(suggested_name)
        path = Path(chosen)
        # A path without a suffix names a directory, existing or not.
        if path.is_dir() or not path.suffix:
            path = path / suggested_name
        return LocalFileHandle(path)


# ============================================================================
# Download host
# ============================================================================


class DownloadLink:
    """A link element; clicking it downloads whatever ``href`` points at."""

    def __init__(self, host: "DownloadDirectoryHost"):
        self.href = ""
        self.download = ""
        self._host = host

    def click(self) -> None:
        self._host.download(self)


class DownloadDirectoryHost:
    """Download host writing into ``directory``.

    Attributes:
        downloads: Paths written so far, in order
    """

    URL_PREFIX = "blob:simforge/"

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)
        self.downloads: list[Path] = []
        self._urls: dict[str, Blob] = {}
        self._children: list[DownloadLink] = []

    @property
    def live_urls(self) -> list[str]:
        return list(self._urls)

    @property
    def attached(self) -> list[DownloadLink]:
        return list(self._children)

    def create_object_url(self, blob: Blob) -> str:
        url = f"{self.URL_PREFIX}{uuid.uuid4()}"
        self._urls[url] = blob
        return url

    def revoke_object_url(self, url: str) -> None:
        self._urls.pop(url, None)

    def create_element(self, tag: str) -> DownloadLink:
        if tag != "a":
            raise ValueError(f"Only link elements are supported, got <{tag}>")
        return DownloadLink(self)

    def append_child(self, element: DownloadLink) -> None:
        self._children.append(element)

    def remove_child(self, element: DownloadLink) -> None:
        self._children.remove(element)

    def download(self, link: DownloadLink) -> Path:
        blob = self._urls.get(link.href)
        if blob is None:
            raise PersistenceError(f"Object URL is not live: {link.href}")

        self.directory.mkdir(parents=True, exist_ok=True)
        target = _unique_path(self.directory / (link.download or "download"))
        target.write_bytes(blob.data)
        self.downloads.append(target)
        logger.debug(f"Downloaded {blob.size} bytes to {target}")
        return target


def _unique_path(path: Path) -> Path:
    """``name.yaml``, then ``name (1).yaml``, ``name (2).yaml``..."""
    if not path.exists():
        return path
    counter = 1
    while True:
        candidate = path.with_name(f"{path.stem} ({counter}){path.suffix}")
        if not candidate.exists():
            return candidate
        counter += 1
