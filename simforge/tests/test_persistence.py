"""
Test Suite: Persistence

Tests for strategy selection, the download fallback's resource handling,
picker cancellation and failure, and the local filesystem hosts.
"""

import shutil
import tempfile
import unittest
from pathlib import Path

from simforge.core.models.project import AgentRole, Project, ServerConfig
from simforge.infrastructure.export.hosts import (
    AtomicFileStream,
    DirectoryPickerHost,
    DownloadDirectoryHost,
)
from simforge.infrastructure.export.persistence import (
    CONFIG_MIME_TYPE,
    FALLBACK_WARNING,
    Blob,
    DownloadSaveStrategy,
    PickerSaveStrategy,
    SaveCancelled,
    SaveOutcome,
    export_project,
    save_config,
    select_strategy,
)


# ============================================================================
# Recording hosts
# ============================================================================


class RecordingLink:
    def __init__(self, log, fail_click=False):
        self.href = ""
        self.download = ""
        self._log = log
        self._fail_click = fail_click

    def click(self):
        self._log.append(("click", self.href, self.download))
        if self._fail_click:
            raise RuntimeError("click blocked")


class RecordingDownloadHost:
    """Download host that records every call."""

    def __init__(self, fail_click=False):
        self.calls = []
        self.blobs = {}
        self._fail_click = fail_click
        self._next = 0

    def create_object_url(self, blob):
        self._next += 1
        url = f"blob:test/{self._next}"
        self.blobs[url] = blob
        self.calls.append(("create_url", url))
        return url

    def revoke_object_url(self, url):
        self.calls.append(("revoke_url", url))

    def create_element(self, tag):
        self.calls.append(("create_element", tag))
        return RecordingLink(self.calls, self._fail_click)

    def append_child(self, element):
        self.calls.append(("append", element.download))

    def remove_child(self, element):
        self.calls.append(("remove", element.download))


class RecordingStream:
    def __init__(self, fail_write=False):
        self.chunks = []
        self.closed = False
        self.aborted = False
        self._fail_write = fail_write

    async def write(self, data):
        if self._fail_write:
            raise OSError("disk full")
        self.chunks.append(data)

    async def close(self):
        self.closed = True

    async def abort(self):
        self.aborted = True


class RecordingHandle:
    def __init__(self, stream):
        self.stream = stream

    async def create_writable(self):
        return self.stream


class RecordingPickerHost:
    def __init__(self, cancel=False, fail_write=False):
        self.cancel = cancel
        self.stream = RecordingStream(fail_write=fail_write)
        self.requests = []

    async def show_save_file_picker(self, *, suggested_name, types):
        self.requests.append((suggested_name, types))
        if self.cancel:
            raise SaveCancelled(suggested_name)
        return RecordingHandle(self.stream)


def _project():
    return Project(
        id="PRJ_1_001",
        name="Test Project",
        game_id=1,
        agent_roles=[AgentRole(role_id=1, name="Trader", number_of_agents=2)],
    )


# ============================================================================
# Tests
# ============================================================================


def test_blob():
    blob = Blob.from_text("name: \"é\"\n")
    assert blob.type == CONFIG_MIME_TYPE == "text/yaml;charset=utf-8"
    assert blob.text() == "name: \"é\"\n"
    assert blob.size == len("name: \"é\"\n".encode("utf-8"))


def test_select_strategy():
    print("\nTesting strategy selection...")

    assert isinstance(select_strategy(RecordingPickerHost()), PickerSaveStrategy)
    assert isinstance(select_strategy(RecordingDownloadHost()), DownloadSaveStrategy)
    print("  ✓ Picker when available, download otherwise")


class SaveConfigTest(unittest.IsolatedAsyncioTestCase):
    """save_config through each strategy."""

    async def test_download_fallback(self) -> None:
        host = RecordingDownloadHost()

        with self.assertLogs("simforge.export.persistence", level="WARNING") as logs:
            outcome = await save_config("a: 1\n", "test_project_config.yaml", host)

        self.assertEqual(outcome, SaveOutcome.DOWNLOADED)
        self.assertIn(FALLBACK_WARNING, logs.output[0])
        self.assertEqual(
            host.calls,
            [
                ("create_url", "blob:test/1"),
                ("create_element", "a"),
                ("append", "test_project_config.yaml"),
                ("click", "blob:test/1", "test_project_config.yaml"),
                ("remove", "test_project_config.yaml"),
                ("revoke_url", "blob:test/1"),
            ],
        )
        blob = host.blobs["blob:test/1"]
        self.assertEqual(blob.type, CONFIG_MIME_TYPE)
        self.assertEqual(blob.text(), "a: 1\n")

    async def test_download_releases_resources_when_click_fails(self) -> None:
        host = RecordingDownloadHost(fail_click=True)

        with self.assertLogs("simforge.export.persistence", level="ERROR"):
            outcome = await save_config("a: 1\n", "x_config.yaml", host)

        self.assertEqual(outcome, SaveOutcome.FAILED)
        names = [call[0] for call in host.calls]
        self.assertEqual(names.count("append"), 1)
        self.assertEqual(names.count("remove"), 1)
        self.assertEqual(names.count("create_url"), 1)
        self.assertEqual(names.count("revoke_url"), 1)
        self.assertLess(names.index("remove"), names.index("revoke_url"))

    async def test_picker_saves(self) -> None:
        host = RecordingPickerHost()

        outcome = await save_config("a: 1\n", "test_project_config.yaml", host)

        self.assertEqual(outcome, SaveOutcome.SAVED)
        suggested_name, types = host.requests[0]
        self.assertEqual(suggested_name, "test_project_config.yaml")
        self.assertEqual(types[0]["accept"], {"text/yaml": [".yaml", ".yml"]})
        self.assertEqual(host.stream.chunks, ["a: 1\n"])
        self.assertTrue(host.stream.closed)

    async def test_picker_cancel(self) -> None:
        host = RecordingPickerHost(cancel=True)

        with self.assertLogs("simforge.export.persistence", level="INFO") as logs:
            outcome = await save_config("a: 1\n", "x_config.yaml", host)

        self.assertEqual(outcome, SaveOutcome.CANCELLED)
        self.assertFalse(any("ERROR" in line for line in logs.output))
        self.assertEqual(host.stream.chunks, [])

    async def test_picker_write_failure_aborts(self) -> None:
        host = RecordingPickerHost(fail_write=True)

        with self.assertLogs("simforge.export.persistence", level="ERROR") as logs:
            outcome = await save_config("a: 1\n", "x_config.yaml", host)

        self.assertEqual(outcome, SaveOutcome.FAILED)
        self.assertTrue(host.stream.aborted)
        self.assertFalse(host.stream.closed)
        self.assertIn("disk full", logs.output[0])


class ExportProjectTest(unittest.IsolatedAsyncioTestCase):
    """export_project against the local filesystem hosts."""

    async def asyncSetUp(self) -> None:
        self.temp_dir = Path(tempfile.mkdtemp())

    async def asyncTearDown(self) -> None:
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    async def test_export_to_download_directory(self) -> None:
        host = DownloadDirectoryHost(self.temp_dir / "downloads")

        result = await export_project(_project(), ServerConfig(), host)

        self.assertEqual(result.outcome, SaveOutcome.DOWNLOADED)
        self.assertEqual(result.filename, "test_project_config.yaml")
        saved = self.temp_dir / "downloads" / "test_project_config.yaml"
        self.assertEqual(saved.read_text(encoding="utf-8"), result.content)
        self.assertEqual(host.live_urls, [])
        self.assertEqual(host.attached, [])

    async def test_download_does_not_overwrite(self) -> None:
        host = DownloadDirectoryHost(self.temp_dir)

        await export_project(_project(), ServerConfig(), host)
        await export_project(_project(), ServerConfig(), host)

        self.assertEqual(
            [p.name for p in host.downloads],
            ["test_project_config.yaml", "test_project_config (1).yaml"],
        )

    async def test_export_through_picker(self) -> None:
        target = self.temp_dir / "out" / "chosen.yaml"
        host = DirectoryPickerHost(lambda suggested_name: target)

        result = await export_project(_project(), ServerConfig(port=9000), host)

        self.assertEqual(result.outcome, SaveOutcome.SAVED)
        self.assertEqual(target.read_text(encoding="utf-8"), result.content)
        self.assertIn("port: 9000", result.content)
        self.assertEqual(list(target.parent.glob("*.tmp")), [])

    async def test_picker_into_directory_uses_suggested_name(self) -> None:
        host = DirectoryPickerHost(lambda suggested_name: self.temp_dir)

        result = await export_project(_project(), ServerConfig(), host)

        self.assertEqual(result.outcome, SaveOutcome.SAVED)
        self.assertTrue((self.temp_dir / "test_project_config.yaml").exists())

    async def test_picker_into_new_directory(self) -> None:
        configs = self.temp_dir / "configs"
        host = DirectoryPickerHost(lambda suggested_name: configs)

        result = await export_project(_project(), ServerConfig(), host)

        self.assertEqual(result.outcome, SaveOutcome.SAVED)
        self.assertTrue(configs.is_dir())
        self.assertTrue((configs / "test_project_config.yaml").exists())

    async def test_picker_cancel_writes_nothing(self) -> None:
        host = DirectoryPickerHost(lambda suggested_name: None)

        result = await export_project(_project(), ServerConfig(), host)

        self.assertEqual(result.outcome, SaveOutcome.CANCELLED)
        self.assertEqual(list(self.temp_dir.iterdir()), [])

    async def test_export_uses_a_snapshot(self) -> None:
        project = _project()
        host = DownloadDirectoryHost(self.temp_dir)

        result = await export_project(project, ServerConfig(), host)
        project.agent_roles[0].number_of_agents = 5

        self.assertIn("number_of_agents: 2", result.content)
        self.assertNotIn("- id: 3", result.content)


class AtomicStreamTest(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self.temp_dir = Path(tempfile.mkdtemp())

    async def asyncTearDown(self) -> None:
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    async def test_abort_leaves_existing_file(self) -> None:
        target = self.temp_dir / "config.yaml"
        target.write_text("old\n", encoding="utf-8")
        host = DirectoryPickerHost(lambda suggested_name: target)

        handle = await host.show_save_file_picker(suggested_name="config.yaml")
        stream = await handle.create_writable()
        await stream.write("new\n")
        await stream.abort()

        self.assertEqual(target.read_text(encoding="utf-8"), "old\n")
        self.assertEqual(sorted(p.name for p in self.temp_dir.iterdir()), ["config.yaml"])

    async def test_failed_close_removes_temp_file(self) -> None:
        target = self.temp_dir / "config.yaml"
        target.mkdir()
        (target / "keep.txt").write_text("x", encoding="utf-8")

        stream = AtomicFileStream(target)
        await stream.write("new\n")
        with self.assertRaises(OSError):
            await stream.close()

        self.assertEqual(list(self.temp_dir.glob("*.tmp")), [])
        self.assertEqual(sorted(p.name for p in self.temp_dir.iterdir()), ["config.yaml"])
