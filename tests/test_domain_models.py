"""Tests for domain/models.py."""

from pathlib import Path

import pytest

from fstab_builder.domain import (
    FS_PROFILES,
    DeviceRecord,
    MountEntry,
    RecordOutcome,
    RecordStatus,
    RunReport,
    RunState,
    profile_for,
)


class TestProfiles:
    """Tests for the fixed filesystem profile table."""

    def test_ext4_profile(self):
        profile = profile_for("ext4")

        assert (profile.options, profile.dump, profile.passno) == ("defaults", 0, 2)

    def test_ntfs_profile(self):
        profile = profile_for("ntfs")

        assert (profile.options, profile.dump, profile.passno) == (
            "defaults,uid=1000,gid=1000",
            0,
            0,
        )

    def test_only_ext4_and_ntfs(self):
        assert set(FS_PROFILES) == {"ext4", "ntfs"}

    def test_unknown_type(self):
        with pytest.raises(KeyError):
            profile_for("vfat")


class TestDeviceRecord:
    @pytest.mark.parametrize(
        "fs_type, candidate",
        [("ext4", True), ("ntfs", True), ("swap", False), ("vfat", False), (None, False)],
    )
    def test_is_candidate(self, fs_type, candidate):
        assert DeviceRecord(device="/dev/sda1", fs_type=fs_type).is_candidate is candidate

    def test_only_ext4_can_relabel(self):
        assert DeviceRecord(device="/dev/sda1", fs_type="ext4").can_relabel is True
        assert DeviceRecord(device="/dev/sda1", fs_type="ntfs").can_relabel is False

    def test_describe(self):
        record = DeviceRecord(device="/dev/sdb1", fs_type="ntfs", uuid="ef01-5678")

        assert record.describe() == [
            "Found drive:",
            "  Device: /dev/sdb1",
            "  UUID: ef01-5678",
            "  Filesystem: ntfs",
            "  Label: None",
        ]

    def test_is_frozen(self):
        record = DeviceRecord(device="/dev/sda1")

        with pytest.raises(AttributeError):
            record.label = "changed"


class TestMountEntry:
    """Tests for MountEntry construction, rendering and parsing."""

    def test_for_ext4_device(self):
        record = DeviceRecord(device="/dev/sda1", fs_type="ext4", uuid="abcd-1234", label="Data")

        entry = MountEntry.for_device(record, Path("/mnt/Data"))

        assert entry.to_line() == "UUID=abcd-1234 /mnt/Data ext4 defaults 0 2"

    def test_for_ntfs_device(self):
        record = DeviceRecord(device="/dev/sdb1", fs_type="ntfs", uuid="ef01-5678")

        entry = MountEntry.for_device(record, "/mnt/Backup_Drive")

        assert entry.to_line() == (
            "UUID=ef01-5678 /mnt/Backup_Drive ntfs defaults,uid=1000,gid=1000 0 0"
        )

    def test_for_device_without_uuid(self):
        with pytest.raises(ValueError):
            MountEntry.for_device(DeviceRecord(device="/dev/sda1", fs_type="ext4"), "/mnt/x")

    def test_for_unsupported_device(self):
        with pytest.raises(KeyError):
            MountEntry.for_device(
                DeviceRecord(device="/dev/sda1", fs_type="swap", uuid="s"), "/mnt/x"
            )

    def test_from_line(self):
        entry = MountEntry.from_line("UUID=abcd-1234\t/mnt/Data  ext4 defaults 0 2\n")

        assert entry == MountEntry("abcd-1234", "/mnt/Data", "ext4", "defaults", 0, 2)

    @pytest.mark.parametrize(
        "line",
        [
            "",
            "# UUID=abcd /mnt/x ext4 defaults 0 2",
            "/dev/sda1 /mnt/x ext4 defaults 0 2",
            "LABEL=Data /mnt/x ext4 defaults 0 2",
            "UUID=abcd",
            "UUID= /mnt/x ext4 defaults 0 2",
        ],
    )
    def test_from_line_ignores_other_lines(self, line):
        assert MountEntry.from_line(line) is None

    @pytest.mark.parametrize(
        "line, expected",
        [
            ("UUID=abcd /mnt/x ext4 defaults", ("ext4", "defaults", 0, 0)),
            ("UUID=abcd /mnt/x ext4 defaults 1", ("ext4", "defaults", 1, 0)),
            ("UUID=abcd /mnt/x ext4 defaults x y", ("ext4", "defaults", 0, 0)),
            ("UUID=abcd /mnt/x", ("auto", "defaults", 0, 0)),
            ('UUID="abcd"\t/mnt/x\tntfs\tdefaults\t0\t0', ("ntfs", "defaults", 0, 0)),
        ],
    )
    def test_from_line_accepts_short_entries(self, line, expected):
        entry = MountEntry.from_line(line)

        assert entry.uuid == "abcd"
        assert entry.mount_point == "/mnt/x"
        assert (entry.fs_type, entry.options, entry.dump, entry.passno) == expected


class TestOutcomes:
    def test_outcome_constructors(self):
        entry = MountEntry("a", "/mnt/A", "ext4", "defaults", 0, 2)

        assert RecordOutcome.appended("/dev/sda1", entry).status is RecordStatus.APPENDED
        assert RecordOutcome.skipped("/dev/sda1", "no UUID").reason == "no UUID"
        assert RecordOutcome.fatal("/dev/sda1", "eof").status is RecordStatus.FATAL

    @pytest.mark.parametrize(
        "state, code",
        [
            (RunState.SUCCESS, 0),
            (RunState.NO_ENTRIES, 0),
            (RunState.DRY_RUN, 0),
            (RunState.ROLLED_BACK, 1),
        ],
    )
    def test_exit_codes(self, state, code):
        assert RunReport(state=state).exit_code == code

    def test_count(self):
        report = RunReport(
            state=RunState.SUCCESS,
            outcomes=[
                RecordOutcome.skipped("/dev/sda1", "declined by operator"),
                RecordOutcome.skipped("/dev/sdb1", "no UUID"),
            ],
        )

        assert report.count(RecordStatus.SKIPPED) == 2
        assert report.count(RecordStatus.APPENDED) == 0
