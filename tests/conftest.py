"""
Pytest configuration and shared fixtures for fstab-builder tests.

This module provides common fixtures and utilities used across all test modules.
"""

import subprocess
from datetime import datetime
from pathlib import Path
from typing import Iterable, List, Optional
from unittest.mock import Mock

import pytest

from fstab_builder.services.builder import BuilderOptions, FstabBuilder
from fstab_builder.storage.exceptions import CommitError, RestoreError
from fstab_builder.storage.fstab import drop_uuid_lines, join_with_lines


EXISTING_FSTAB = (
    "# /etc/fstab: static file system information.\n"
    "proc /proc proc defaults 0 0\n"
    "UUID=deadbeef-1234 / ext4 defaults,noatime 0 1\n"
)


# ==============================================================================
# Test Doubles
# ==============================================================================


class InMemoryFstab:
    """Mount table store kept in memory."""

    def __init__(self, text: str = EXISTING_FSTAB, path: str = "/etc/fstab"):
        self.path = Path(path)
        self.text = text
        self.present = True
        self.backups: dict[Path, str] = {}
        self.fail_append = False
        self.fail_restore = False
        self.append_calls: List[List[str]] = []
        self.replace_calls: List[tuple] = []

    def exists(self) -> bool:
        return self.present

    def read_text(self) -> str:
        return self.text

    def backup(self, now: Optional[datetime] = None) -> Path:
        stamp = (now or datetime(2026, 1, 2, 3, 4, 5)).strftime("%Y-%m-%d_%H:%M:%S")
        backup_path = self.path.with_name(f"{self.path.name}.bak-{stamp}")
        self.backups[backup_path] = self.text
        return backup_path

    def append(self, lines: Iterable[str]) -> None:
        lines = list(lines)
        self.append_calls.append(lines)
        if self.fail_append:
            raise CommitError(self.path, "disk full")
        self.text = join_with_lines(self.text, lines)

    def replace(self, lines: Iterable[str], drop_uuids: Iterable[str]) -> None:
        lines, drop_uuids = list(lines), list(drop_uuids)
        self.replace_calls.append((lines, drop_uuids))
        if self.fail_append:
            raise CommitError(self.path, "disk full")
        self.text = join_with_lines(drop_uuid_lines(self.text, drop_uuids), lines)

    def restore(self, backup_path: Path) -> None:
        if self.fail_restore:
            raise RestoreError(self.path, backup_path, "read-only filesystem")
        self.text = self.backups[backup_path]


class ScriptedPrompter:
    """Prompter answering from pre-recorded responses.

    Raises EOFError once a queue runs out, like a closed terminal.
    """

    def __init__(self, confirms: Iterable[bool] = (), answers: Iterable[str] = ()):
        self.confirms = list(confirms)
        self.answers = list(answers)
        self.displayed: List[str] = []
        self.confirm_prompts: List[str] = []
        self.ask_prompts: List[str] = []

    def display_lines(self, lines: Iterable[str]) -> None:
        self.displayed.extend(lines)

    def confirm(self, prompt: str) -> bool:
        self.confirm_prompts.append(prompt)
        if not self.confirms:
            raise EOFError("no scripted confirmation left")
        return self.confirms.pop(0)

    def ask(self, prompt: str) -> str:
        self.ask_prompts.append(prompt)
        if not self.answers:
            raise EOFError("no scripted answer left")
        return self.answers.pop(0)


# ==============================================================================
# Device Fixtures
# ==============================================================================


@pytest.fixture
def blkid_output() -> str:
    """
    Fixture providing typical blkid output.

    Returns:
        Output with a system root, a labelled ext4 partition, an unlabelled
        NTFS partition, a swap partition and a vfat boot partition.
    """
    return (
        '/dev/mmcblk0p1: LABEL_FATBOOT="bootfs" LABEL="bootfs" UUID="91FE-7499" '
        'BLOCK_SIZE="512" TYPE="vfat" PARTUUID="5e3da3da-01"\n'
        '/dev/sda1: LABEL="Data" UUID="abcd-1234" BLOCK_SIZE="4096" TYPE="ext4" '
        'PARTLABEL="Linux filesystem" PARTUUID="0f1e2d3c-01"\n'
        '/dev/sdb1: UUID="ef01-5678" BLOCK_SIZE="512" TYPE="ntfs" '
        'PARTLABEL="Basic data partition" PARTUUID="9a8b7c6d-01"\n'
        '/dev/sdc2: UUID="5555-swap" TYPE="swap" PARTUUID="11112222-02"\n'
    )


@pytest.fixture
def mock_subprocess_success(mocker) -> Mock:
    """
    Fixture providing a mock subprocess.run that always succeeds.

    Returns:
        Mock object for subprocess.run.
    """
    mock_result = Mock()
    mock_result.returncode = 0
    mock_result.stdout = ""
    mock_result.stderr = ""
    return mocker.patch("subprocess.run", return_value=mock_result)


@pytest.fixture
def mock_subprocess_failure(mocker) -> Mock:
    """
    Fixture providing a mock subprocess.run that always fails.

    Returns:
        Mock object for subprocess.run that raises CalledProcessError.
    """

    def raise_error(*args, **kwargs):
        raise subprocess.CalledProcessError(1, args[0], stderr="Mock error")

    return mocker.patch("subprocess.run", side_effect=raise_error)


# ==============================================================================
# Builder Fixtures
# ==============================================================================


@pytest.fixture
def fstab_store() -> InMemoryFstab:
    """Fixture providing an in-memory mount table with a root entry."""
    return InMemoryFstab()


@pytest.fixture
def mount_root(tmp_path) -> Path:
    """Fixture providing a temporary directory used as the mount root."""
    root = tmp_path / "mnt"
    root.mkdir()
    return root


@pytest.fixture
def make_builder(fstab_store, mount_root):
    """
    Fixture returning a factory for builders wired to test doubles.

    Args:
        fstab_store: In-memory mount table.
        mount_root: Temporary mount root.

    Returns:
        Callable taking records, a prompter and option overrides.
    """

    def factory(records, prompter, validate_result=True, relabel=None, **overrides):
        overrides.setdefault("verify_devices", False)
        options = BuilderOptions(mount_root=mount_root, **overrides)
        return FstabBuilder(
            fstab_store,
            prompter,
            options,
            enumerate_devices=lambda: iter(records),
            validate_table=Mock(return_value=validate_result),
            relabel=relabel or Mock(return_value=True),
            geteuid=lambda: 0,
        )

    return factory
