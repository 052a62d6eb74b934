"""Interactive mount table builder.

A run moves through fixed phases::

    preconditions -> backup -> enumerate -> (per device: parse, confirm,
    resolve, stage)* -> commit -> validate -> success | rolled back

Fatal problems raise :class:`~fstab_builder.storage.exceptions.FstabBuilderError`
subclasses. Problems with a single device produce a skipped
:class:`RecordOutcome` and the run moves on to the next device.

Overwrite Handling:
    When a UUID is already present in the mount table the builder either
    skips the device, asks the operator, or replaces without asking,
    depending on ``overwrite_mode``. A confirmed overwrite removes the old
    line for that UUID when the table is committed, so a UUID never appears
    twice.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, Iterator, Optional

from fstab_builder.config import settings
from fstab_builder.domain.models import (
    DeviceRecord,
    MountEntry,
    RecordOutcome,
    RecordStatus,
    RunReport,
    RunState,
)
from fstab_builder.logging import LoggerFactory
from fstab_builder.storage import devices, labels
from fstab_builder.storage.exceptions import (
    InsufficientPrivilegesError,
    MissingConfigError,
    RunAbortedError,
)
from fstab_builder.storage.fstab import MountTableStore, table_uuids
from fstab_builder.storage.validation import (
    is_valid_entry_line,
    is_valid_mount_name,
    sanitize_mount_name,
    validate_mount_table,
)
from fstab_builder.ui.prompts import Prompter

log = LoggerFactory.for_builder()


@dataclass
class BuilderOptions:
    mount_root: Path = Path(settings.DEFAULT_MOUNT_ROOT)
    uuid_dir: Path = Path(settings.DEFAULT_UUID_DIR)
    overwrite_mode: str = "prompt"  # skip, prompt or replace
    verify_devices: bool = True
    offer_relabel: bool = True
    validation_mode: str = "mount"  # mount or verify
    dry_run: bool = False

    @classmethod
    def from_settings(cls) -> BuilderOptions:
        return cls(
            mount_root=Path(settings.get_setting("mount_root", settings.DEFAULT_MOUNT_ROOT)),
            uuid_dir=Path(settings.get_setting("uuid_dir", settings.DEFAULT_UUID_DIR)),
            overwrite_mode=settings.get_choice(
                "overwrite_mode", settings.OVERWRITE_MODES, "prompt"
            ),
            verify_devices=settings.get_bool("verify_devices", True),
            offer_relabel=settings.get_bool("offer_relabel", True),
            validation_mode=settings.get_choice(
                "validation_mode", settings.VALIDATION_MODES, "mount"
            ),
        )


class FstabBuilder:
    """Build mount table entries for ext4 and NTFS filesystems."""

    def __init__(
        self,
        store: MountTableStore,
        prompter: Prompter,
        options: Optional[BuilderOptions] = None,
        *,
        enumerate_devices: Callable[[], Iterable[DeviceRecord]] = devices.iter_device_records,
        validate_table: Callable[[Path, str], bool] = validate_mount_table,
        relabel: Callable[[str, str, str], bool] = labels.apply_label,
        geteuid: Callable[[], int] = os.geteuid,
    ):
        self.store = store
        self.prompter = prompter
        self.options = options or BuilderOptions()
        self.enumerate_devices = enumerate_devices
        self.validate_table = validate_table
        self.relabel = relabel
        self.geteuid = geteuid

    # ------------------------------------------------------------------
    # Phases
    # ------------------------------------------------------------------

    def check_preconditions(self) -> None:
        """Raise unless running as root against an existing mount table."""
        euid = self.geteuid()
        if euid != 0:
            raise InsufficientPrivilegesError(euid)
        if not self.store.exists():
            raise MissingConfigError(self.store.path)

    def candidates(self) -> Iterator[DeviceRecord]:
        """Yield ext4/NTFS records; every other device is ignored."""
        for record in self.enumerate_devices():
            if not record.is_candidate:
                log.trace(f"Ignoring {record.device} (type={record.fs_type})")
                continue
            yield record

    def process_record(
        self,
        record: DeviceRecord,
        existing_uuids: set[str],
        staged: list[MountEntry],
    ) -> RecordOutcome:
        """Confirm one device with the operator and build its entry.

        Raises:
            EOFError: If the terminal input is closed while prompting
        """
        device = record.device
        uuid = record.uuid
        if not uuid:
            return self._skip(device, f"no UUID found for {device}")

        if self.options.verify_devices:
            if not devices.device_node_exists(device):
                return self._skip(device, f"device node {device} does not exist")
            if not devices.uuid_resolves(uuid, self.options.uuid_dir):
                log.warning(
                    f"UUID={uuid} does not resolve under {self.options.uuid_dir}"
                )

        self.prompter.display_lines(record.describe())
        if not self.prompter.confirm(f"Add this drive to {self.store.path}?"):
            log.info(f"Skipping {device} (UUID={uuid})")
            return RecordOutcome.skipped(device, "declined by operator")

        if any(entry.uuid == uuid for entry in staged):
            return self._skip(device, f"UUID={uuid} already staged in this run")

        replaces_existing = False
        if uuid in existing_uuids:
            replaces_existing = self._allow_overwrite(uuid)
            if not replaces_existing:
                return self._skip(
                    device, f"UUID={uuid} already exists in {self.store.path}"
                )

        name = self.resolve_mount_name(record)
        if not is_valid_mount_name(name):
            return self._skip(device, f"invalid mount point name {name!r}")

        mount_point = self.options.mount_root / name
        if any(entry.mount_point == str(mount_point) for entry in staged):
            return self._skip(device, f"mount point {mount_point} already staged")

        self._maybe_relabel(record, name)

        if not mount_point.is_dir():
            try:
                mount_point.mkdir(parents=True, exist_ok=True)
            except OSError as error:
                return self._skip(device, f"failed to create {mount_point}: {error}")
            log.info(f"Created mount point {mount_point}")

        entry = MountEntry.for_device(record, mount_point)
        line = entry.to_line()
        if not is_valid_entry_line(line):
            return self._skip(device, f"malformed entry discarded: {line}")

        log.info(f"Generated fstab entry: {line}")
        return RecordOutcome.appended(device, entry, replaces_existing)

    def resolve_mount_name(self, record: DeviceRecord) -> str:
        """Return the sanitized mount point name for ``record``.

        The filesystem label is used when present; otherwise the operator is
        asked until a non-empty name is given.
        """
        if record.label:
            return sanitize_mount_name(record.label)

        self.prompter.display_lines(
            [
                f"No LABEL found for {record.device} "
                f"(UUID={record.uuid}, type={record.fs_type})."
            ]
        )
        prompt = f"Enter a LABEL for this {record.fs_type} filesystem"
        name = self.prompter.ask(prompt)
        while not name.strip():
            self.prompter.display_lines(["LABEL cannot be empty."])
            name = self.prompter.ask(prompt)
        return sanitize_mount_name(name)

    def commit(self, entries: list[MountEntry], replace_uuids: list[str]) -> None:
        """Write staged entries to the mount table.

        Raises:
            CommitError: If the table cannot be written
        """
        lines = [entry.to_line() for entry in entries]
        if replace_uuids:
            self.store.replace(lines, replace_uuids)
        else:
            self.store.append(lines)

    def validate(self, backup_path: Path) -> RunState:
        """Check the committed table, restoring the backup when it fails.

        Raises:
            RestoreError: If the backup cannot be restored
        """
        log.info("Testing new fstab configuration...")
        if self.validate_table(self.store.path, self.options.validation_mode):
            log.success("fstab configuration tested OK")
            return RunState.SUCCESS

        log.error("Invalid fstab configuration detected. Restoring backup.")
        self.store.restore(backup_path)
        log.warning(f"Backup {backup_path} restored")
        return RunState.ROLLED_BACK

    def run(self) -> RunReport:
        """Run every phase and report the terminal state.

        Raises:
            FstabBuilderError: On any fatal error
        """
        self.check_preconditions()
        backup_path = self.store.backup()
        report = RunReport(state=RunState.NO_ENTRIES, backup_path=backup_path)

        try:
            existing_uuids = table_uuids(self.store.read_text())
        except OSError as error:
            raise RunAbortedError(f"cannot read {self.store.path}: {error}") from error

        staged: list[MountEntry] = []
        replace_uuids: list[str] = []
        for record in self.candidates():
            outcome = self._process_safely(record, existing_uuids, staged)
            report.outcomes.append(outcome)
            if outcome.status is RecordStatus.FATAL:
                raise RunAbortedError(outcome.reason, record.device)
            if outcome.status is RecordStatus.APPENDED and outcome.entry is not None:
                staged.append(outcome.entry)
                if outcome.replaces_existing:
                    replace_uuids.append(outcome.entry.uuid)

        report.entries = list(staged)
        if not staged:
            log.info("No ext4 or NTFS filesystems found or no new entries generated.")
            return report

        if self.options.dry_run:
            self.prompter.display_lines(
                ["Dry run, entries not written:"]
                + [f"  {entry.to_line()}" for entry in staged]
            )
            report.state = RunState.DRY_RUN
            return report

        self.commit(staged, replace_uuids)
        report.state = self.validate(backup_path)
        if report.state is RunState.SUCCESS:
            log.info("Done! Please reboot to confirm automatic mounting.")
        return report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _process_safely(
        self,
        record: DeviceRecord,
        existing_uuids: set[str],
        staged: list[MountEntry],
    ) -> RecordOutcome:
        try:
            return self.process_record(record, existing_uuids, staged)
        except EOFError:
            return RecordOutcome.fatal(record.device, "terminal input closed")

    def _skip(self, device: str, reason: str) -> RecordOutcome:
        log.warning(f"Skipping {device}: {reason}")
        return RecordOutcome.skipped(device, reason)

    def _allow_overwrite(self, uuid: str) -> bool:
        mode = self.options.overwrite_mode
        if mode == "replace":
            log.info(f"Replacing existing entry for UUID={uuid}")
            return True
        if mode == "prompt":
            return self.prompter.confirm(
                f"UUID={uuid} already exists in {self.store.path}. Overwrite it?"
            )
        return False

    def _maybe_relabel(self, record: DeviceRecord, name: str) -> None:
        if name == record.label:
            return
        if not record.can_relabel:
            log.info(f"Note: {record.fs_type} label not applied to {record.device}")
            return
        if not self.options.offer_relabel:
            return
        if len(name) > labels.EXT4_LABEL_MAX_LENGTH:
            log.info(
                f"Name '{name}' is longer than {labels.EXT4_LABEL_MAX_LENGTH} "
                f"characters, label of {record.device} left unchanged"
            )
            return
        if self.prompter.confirm(f"Apply label '{name}' to {record.device}?"):
            if not self.relabel(record.device, record.fs_type or "", name):
                log.warning(f"Failed to apply label '{name}' to {record.device}")
