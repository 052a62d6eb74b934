"""Block device enumeration and checks using blkid.

This module is the device-metadata side of the builder. It runs ``blkid`` and
turns each output line into a :class:`DeviceRecord`.

blkid Output:
    One line per block device, a device path followed by a colon and a list
    of ``KEY="value"`` attributes separated by spaces::

        /dev/sda1: LABEL="Data" UUID="abcd-1234" BLOCK_SIZE="4096" TYPE="ext4" PARTLABEL="Linux" PARTUUID="0f1e-01"

    Attribute keys are matched exactly. ``LABEL`` never matches
    ``PARTLABEL`` and ``UUID`` never matches ``PARTUUID`` or ``UUID_SUB``.

Operations:
    - iter_device_records(): Run blkid and lazily yield parsed records
    - parse_blkid_line(): Parse a single blkid line
    - device_node_exists(): Check that /dev/<node> exists
    - uuid_resolves(): Check that /dev/disk/by-uuid/<uuid> points to a device

Example:
    >>> from fstab_builder.storage.devices import iter_device_records
    >>> for record in iter_device_records():
    ...     print(record.device, record.fs_type, record.uuid)
    /dev/sda1 ext4 abcd-1234
"""
from __future__ import annotations

import os
import re
import subprocess
from pathlib import Path
from typing import Iterable, Iterator, Optional

from fstab_builder.config.settings import DEFAULT_UUID_DIR
from fstab_builder.domain.models import DeviceRecord
from fstab_builder.logging import LoggerFactory
from fstab_builder.storage.exceptions import DeviceEnumerationError

# blkid exits with 2 when it found no devices
BLKID_NO_DEVICES = 2

_ATTRIBUTE_RE = re.compile(r'([A-Z_]+)="((?:[^"\\]|\\.)*)"')

log = LoggerFactory.for_devices()


def run_command(command, check=True, log_output=True, log_command=True):
    if log_command:
        log.debug(f"Running command: {' '.join(command)}")
    try:
        result = subprocess.run(command, check=check, text=True, capture_output=True)
    except subprocess.CalledProcessError as error:
        log.debug(f"Command failed: {' '.join(command)}")
        if error.stdout:
            log.bind(tags=["command-output"]).trace(f"stdout: {error.stdout.strip()}")
        if error.stderr:
            log.debug(f"stderr: {error.stderr.strip()}")
        raise
    if result.stdout and (log_output or result.returncode != 0):
        log.bind(tags=["command-output"]).trace(f"stdout: {result.stdout.strip()}")
    if result.stderr and (log_output or result.returncode != 0):
        log.debug(f"stderr: {result.stderr.strip()}")
    if log_command:
        log.debug(f"Command completed with return code {result.returncode}")
    return result


def _unescape(value: str) -> str:
    return re.sub(r"\\(.)", r"\1", value)


def parse_blkid_line(line: str) -> Optional[DeviceRecord]:
    """Parse one line of blkid output.

    Returns None for blank lines and lines without a ``device:`` prefix.
    """
    line = line.strip()
    if not line:
        return None
    device, sep, rest = line.partition(":")
    if not sep or not device.startswith("/"):
        return None

    attributes: dict[str, str] = {}
    for key, value in _ATTRIBUTE_RE.findall(rest):
        # First occurrence wins, as in blkid's own lookup
        attributes.setdefault(key, _unescape(value))

    return DeviceRecord(
        device=device.strip(),
        fs_type=attributes.get("TYPE") or None,
        uuid=attributes.get("UUID") or None,
        label=attributes.get("LABEL") or None,
    )


def parse_blkid_output(lines: Iterable[str]) -> Iterator[DeviceRecord]:
    for line in lines:
        record = parse_blkid_line(line)
        if record is None:
            if line.strip():
                log.debug(f"Ignoring unparsable blkid line: {line.strip()}")
            continue
        yield record


def list_blkid_lines() -> list[str]:
    """Run blkid and return its output lines.

    Raises:
        DeviceEnumerationError: If blkid is missing or fails
    """
    try:
        result = run_command(["blkid"], check=False, log_output=False)
    except FileNotFoundError as error:
        raise DeviceEnumerationError("blkid not found") from error
    except OSError as error:
        raise DeviceEnumerationError(str(error)) from error

    if result.returncode == BLKID_NO_DEVICES:
        log.info("blkid found no block devices")
        return []
    if result.returncode != 0:
        stderr = result.stderr.strip() if result.stderr else "no error message"
        raise DeviceEnumerationError(f"blkid exited with {result.returncode}: {stderr}")
    return result.stdout.splitlines()


def iter_device_records() -> Iterator[DeviceRecord]:
    """Lazily yield records for every block device blkid reports.

    blkid runs when iteration starts; iterate again to re-query it.
    """
    lines = list_blkid_lines()
    log.debug(f"blkid reported {len(lines)} lines")
    yield from parse_blkid_output(lines)


def device_node_exists(device: str) -> bool:
    return os.path.exists(device)


def uuid_resolves(uuid: str, uuid_dir: Path | str = DEFAULT_UUID_DIR) -> bool:
    """Check that the UUID symlink exists and points to an existing node."""
    link = Path(uuid_dir) / uuid
    if not link.is_symlink():
        return False
    return link.resolve().exists()
