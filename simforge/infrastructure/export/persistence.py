"""
Persistence for exported configurations.

Two strategies implement one ``save`` capability and the host decides which
one applies:

- PickerSaveStrategy: the host can show a save-file picker. The user picks
  a location, the text is written through a writable stream, the stream is
  closed. Cancelling the picker is a normal outcome.
- DownloadSaveStrategy: no picker. The text becomes a blob behind a
  temporary object URL, a temporary link element pointing at it is clicked,
  and both are released again whatever happens in between.

Saving is best effort: failures are logged and reported as an outcome,
never raised to the caller.
"""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Protocol

from simforge.core.models.project import Project, ServerConfig
from simforge.infrastructure.export.compiler import compile_config, config_filename
from simforge.utils.logging import get_logger, log_error, log_operation

logger = get_logger("export.persistence")

CONFIG_MIME_TYPE = "text/yaml;charset=utf-8"
FALLBACK_WARNING = "Save picker not supported. Using fallback download method."
PICKER_FILE_TYPES = [
    {
        "description": "YAML configuration",
        "accept": {"text/yaml": [".yaml", ".yml"]},
    }
]


class PersistenceError(Exception):
    """A host failed to store an export."""


class SaveCancelled(Exception):
    """The user dismissed the save picker."""


class SaveOutcome(str, Enum):
    SAVED = "saved"
    DOWNLOADED = "downloaded"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class Blob:
    """Immutable bytes tagged with a MIME type."""

    data: bytes
    type: str = ""

    @classmethod
    def from_text(cls, text: str, type: str = CONFIG_MIME_TYPE) -> "Blob":
        return cls(data=text.encode("utf-8"), type=type)

    @property
    def size(self) -> int:
        return len(self.data)

    def text(self) -> str:
        return self.data.decode("utf-8")


# ============================================================================
# Host capabilities
# ============================================================================


class WritableStream(Protocol):
    async def write(self, data: str | bytes) -> None: ...

    async def close(self) -> None: ...

    async def abort(self) -> None: ...


class FileHandle(Protocol):
    async def create_writable(self) -> WritableStream: ...


class SavePickerHost(Protocol):
    async def show_save_file_picker(
        self,
        *,
        suggested_name: str,
        types: list[dict],
    ) -> FileHandle: ...


class LinkElement(Protocol):
    href: str
    download: str

    def click(self) -> None: ...


class DownloadHost(Protocol):
    def create_object_url(self, blob: Blob) -> str: ...

    def revoke_object_url(self, url: str) -> None: ...

    def create_element(self, tag: str) -> LinkElement: ...

    def append_child(self, element: LinkElement) -> None: ...

    def remove_child(self, element: LinkElement) -> None: ...


# ============================================================================
# Strategies
# ============================================================================


class SaveStrategy(Protocol):
    async def save(self, text: str, filename: str) -> SaveOutcome: ...


class PickerSaveStrategy:
    """Save through the host's file picker and a writable stream."""

    def __init__(self, host: SavePickerHost):
        self.host = host

    async def save(self, text: str, filename: str) -> SaveOutcome:
        handle = await self.host.show_save_file_picker(
            suggested_name=filename,
            types=PICKER_FILE_TYPES,
        )
        writable = await handle.create_writable()
        try:
            await writable.write(text)
        except BaseException:
            await writable.abort()
            raise
        await writable.close()
        return SaveOutcome.SAVED


@contextmanager
def object_url(host: DownloadHost, blob: Blob) -> Iterator[str]:
    """An object URL for ``blob`` that is revoked on exit."""
    url = host.create_object_url(blob)
    try:
        yield url
    finally:
        host.revoke_object_url(url)


@contextmanager
def attached_link(host: DownloadHost, href: str, filename: str) -> Iterator[LinkElement]:
    """A download link attached to the document and removed on exit."""
    link = host.create_element("a")
    link.href = href
    link.download = filename
    host.append_child(link)
    try:
        yield link
    finally:
        host.remove_child(link)


class DownloadSaveStrategy:
    """Save by triggering a download of an in-memory blob."""

    def __init__(self, host: DownloadHost):
        self.host = host

    async def save(self, text: str, filename: str) -> SaveOutcome:
        logger.warning(FALLBACK_WARNING)
        blob = Blob.from_text(text)
        with object_url(self.host, blob) as url:
            with attached_link(self.host, url, filename) as link:
                link.click()
        return SaveOutcome.DOWNLOADED


def select_strategy(host: object) -> SaveStrategy:
    """Use the save picker when the host offers one, else download."""
    if callable(getattr(host, "show_save_file_picker", None)):
        return PickerSaveStrategy(host)
    return DownloadSaveStrategy(host)


# ============================================================================
# Entry points
# ============================================================================


async def save_config(text: str, filename: str, host: object) -> SaveOutcome:
    """Persist configuration text through the best strategy ``host`` allows."""
    strategy = select_strategy(host)
    try:
        outcome = await strategy.save(text, filename)
    except SaveCancelled:
        log_operation(logger, "Save cancelled", {"filename": filename})
        return SaveOutcome.CANCELLED
    except Exception as e:
        log_error(
            logger,
            "save configuration",
            e,
            {"filename": filename, "strategy": type(strategy).__name__},
        )
        return SaveOutcome.FAILED

    log_operation(
        logger,
        "Saved configuration",
        {"filename": filename, "outcome": outcome.value, "bytes": len(text.encode("utf-8"))},
    )
    return outcome


@dataclass(frozen=True)
class ExportResult:
    filename: str
    content: str
    outcome: SaveOutcome


async def export_project(
    project: Project,
    server: ServerConfig,
    host: object,
) -> ExportResult:
    """Compile a project and save the result.

    The project is snapshotted before anything is awaited, so edits made
    while a save is pending never leak into it.
    """
    snapshot = project.model_copy(deep=True)
    content = compile_config(snapshot, server)
    filename = config_filename(snapshot.name)
    outcome = await save_config(content, filename, host)
    return ExportResult(filename=filename, content=content, outcome=outcome)
