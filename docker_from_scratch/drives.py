"""
Detection and preparation of a spare disk for the data volume.

Formatting is destructive and only happens after a yes/no confirmation AND
the literal text ``YES``. A failure after the partition table was written is
reported but not rolled back; the operator gets the commands needed to finish
by hand.
"""

import logging
import subprocess
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from rich.table import Table

from docker_from_scratch.commands import error_text
from docker_from_scratch.errors import DriveSetupError
from docker_from_scratch.host import Host
from docker_from_scratch.models import DriveCandidate, Operator
from docker_from_scratch.settings import LOGGER_NAME, Settings
from docker_from_scratch.ui import (
    NordColors,
    Prompter,
    console,
    print_error,
    print_info,
    print_section,
    print_step,
    print_success,
    print_warning,
)

logger = logging.getLogger(LOGGER_NAME)

CONFIRMATION_TEXT = "YES"


# ----------------------------------------------------------------
# Detection
# ----------------------------------------------------------------
def partition_name(device: str) -> str:
    """
    Name of the first partition on ``device``.

    Devices whose name ends in a digit (nvme0n1, mmcblk0, loop0) separate the
    partition number with ``p``; all others append it directly.
    """
    if device[-1:].isdigit():
        return f"{device}p1"
    return f"{device}1"


def _alternate_partition_name(device: str) -> str:
    primary = partition_name(device)
    return f"{device}1" if primary.endswith("p1") else f"{device}p1"


def _has_mountpoint(device: Dict[str, Any]) -> bool:
    mounts = [device.get("mountpoint")] + list(device.get("mountpoints") or [])
    if any(mounts):
        return True
    return any(_has_mountpoint(child) for child in device.get("children") or [])


def find_candidates(host: Host) -> List[DriveCandidate]:
    """Whole disks that are not the root disk and have nothing mounted."""
    root_disk = host.block_devices.root_disk()
    candidates = []

    for device in host.block_devices.list_tree():
        name = device.get("name") or ""
        if device.get("type") != "disk" or not name:
            continue
        if name == root_disk:
            continue
        if _has_mountpoint(device):
            continue
        candidates.append(DriveCandidate(name=name, size=int(device.get("size") or 0)))

    logger.debug(f"Drive candidates: {[c.name for c in candidates]}")
    return candidates


def display_candidates(candidates: List[DriveCandidate]) -> None:
    """Display available drives in a numbered table."""
    table = Table(
        show_header=True,
        header_style=f"bold {NordColors.FROST_1}",
        title=f"[bold {NordColors.FROST_2}]Available Drives[/]",
        border_style=NordColors.FROST_3,
    )
    table.add_column("No.", style=f"bold {NordColors.FROST_4}", justify="right", width=4)
    table.add_column("Device", style=f"bold {NordColors.FROST_1}")
    table.add_column("Size", style=NordColors.SNOW_STORM_1, justify="right")

    for i, candidate in enumerate(candidates, 1):
        table.add_row(str(i), candidate.path, candidate.size_human)

    console.print(table)


def fstab_has_uuid(fstab: str, uuid: str) -> bool:
    key = f"UUID={uuid}"
    for line in fstab.splitlines():
        fields = line.split()
        if fields and not fields[0].startswith("#") and fields[0] == key:
            return True
    return False


# ----------------------------------------------------------------
# Setup
# ----------------------------------------------------------------
class DriveSetup:
    def __init__(
        self,
        host: Host,
        prompter: Prompter,
        settings: Settings,
        operator: Operator,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.host = host
        self.prompter = prompter
        self.settings = settings
        self.operator = operator
        self.sleep = sleep

    def offer(self) -> bool:
        """
        Offer to turn a spare disk into the data volume.

        Returns True only if a disk was formatted and mounted at the data
        mount point. No candidates, a declined prompt, an invalid selection
        or a failed step all return False.
        """
        candidates = find_candidates(self.host)
        if not candidates:
            return False

        print_section("Available Drives Detected")
        print_info("The following unmounted drives were detected:")
        display_candidates(candidates)
        print_info("You can set up one of these drives for Docker data storage.")
        print_info("This is recommended for production setups to separate data from the OS.")

        mount_point = self.settings.DATA_MOUNT_POINT
        if not self.prompter.confirm(f"Would you like to set up a drive for {mount_point}?"):
            print_info("Skipping drive setup. You can set up a drive manually later.")
            return False

        if len(candidates) == 1:
            selected = candidates[0]
        else:
            index = self.prompter.choose("Enter the number of the drive to use", len(candidates))
            if index is None:
                print_error("Invalid selection")
                return False
            selected = candidates[index]

        return self.setup_drive(selected.name, mount_point)

    def confirm_erase(self, device: str, mount_point: Path) -> bool:
        print_warning(f"This will ERASE ALL DATA on /dev/{device}!")
        print_info(f"The drive will be formatted with ext4 and mounted at {mount_point}")

        if not self.prompter.confirm(f"Are you sure you want to format /dev/{device}?", default=False):
            return False

        print_warning(f"FINAL WARNING: All data on /dev/{device} will be permanently lost!")
        return self.prompter.ask_literal(
            f"Type '{CONFIRMATION_TEXT}' to confirm", CONFIRMATION_TEXT
        )

    def setup_drive(self, device: str, mount_point: Path) -> bool:
        print_section(f"Setting Up Drive: /dev/{device}")

        if not self.confirm_erase(device, mount_point):
            print_info("Drive setup cancelled.")
            logger.info(f"Drive setup for /dev/{device} declined")
            return False

        try:
            self.format_and_mount(device, mount_point)
        except DriveSetupError as e:
            print_error(str(e))
            logger.error(f"Drive setup for /dev/{device} failed: {e}")
            if e.device:
                self._print_recovery_hint(e, mount_point)
            return False

        print_success(f"Drive successfully set up and mounted at {mount_point}")
        console.print(self.host.disks.usage_report(mount_point))
        return True

    def format_and_mount(self, device: str, mount_point: Path) -> None:
        """Partition, format, register in fstab and mount. Raises DriveSetupError."""
        disks = self.host.disks

        print_step(f"Creating GPT partition table on /dev/{device}...")
        self._do("Failed to create partition table", disks.make_gpt_label, device)

        print_step("Creating partition...")
        self._do("Failed to create partition", disks.make_partition, device, device=device)

        partition = self.resolve_partition(device)
        if partition is None:
            raise DriveSetupError("Could not find the created partition", device=device)

        print_step(f"Formatting /dev/{partition} with ext4...")
        self._do(
            "Failed to format partition",
            disks.format_ext4,
            partition,
            device=device,
            partition=partition,
        )

        print_step(f"Creating mount point at {mount_point}...")
        self._do(
            "Failed to create mount point",
            self.host.files.makedirs,
            mount_point,
            device=device,
            partition=partition,
        )

        print_step("Getting partition UUID...")
        uuid = self.host.block_devices.filesystem_uuid(partition)
        if not uuid:
            raise DriveSetupError("Could not get partition UUID", device, partition)

        print_step(f"Adding entry to {self.settings.FSTAB_FILE}...")
        try:
            appended = self.ensure_fstab_entry(uuid, mount_point)
        except subprocess.CalledProcessError as e:
            raise DriveSetupError(
                f"Failed to update {self.settings.FSTAB_FILE}: {error_text(e)}", device, partition
            ) from e
        if appended:
            logger.info(f"Added fstab entry for UUID={uuid}")
        else:
            print_info(f"Entry already exists in {self.settings.FSTAB_FILE}")

        print_step("Mounting the drive...")
        try:
            disks.mount_all()
        except subprocess.CalledProcessError as e:
            raise DriveSetupError(
                f"Failed to mount drive: {error_text(e)}", device, partition
            ) from e

        if not disks.is_mountpoint(mount_point):
            raise DriveSetupError(
                "Drive setup completed but mount verification failed", device, partition
            )

        self._do(
            "Failed to set ownership of the mount point",
            self.host.files.chown_recursive,
            mount_point,
            self.operator.owner,
            device=device,
            partition=partition,
        )

    def resolve_partition(self, device: str) -> Optional[str]:
        """Wait for the kernel to create the partition node and return its name."""
        self.sleep(self.settings.PARTITION_SETTLE_DELAY)
        names = [partition_name(device), _alternate_partition_name(device)]

        for attempt in range(self.settings.PARTITION_POLL_ATTEMPTS):
            for name in names:
                if self.host.block_devices.is_block_device(name):
                    return name
            logger.debug(f"Partition for {device} not present yet (attempt {attempt + 1})")
            self.sleep(self.settings.PARTITION_POLL_INTERVAL)
        return None

    def fstab_line(self, uuid: str, mount_point: Path) -> str:
        return f"UUID={uuid} {mount_point} ext4 defaults 0 2"

    def ensure_fstab_entry(self, uuid: str, mount_point: Path) -> bool:
        """Append the UUID entry unless one exists. Returns True if appended."""
        fstab = self.host.files.read_text(self.settings.FSTAB_FILE)
        if fstab_has_uuid(fstab, uuid):
            return False
        self.host.files.append_line(self.settings.FSTAB_FILE, self.fstab_line(uuid, mount_point))
        return True

    def _do(
        self,
        failure: str,
        action: Callable[..., Any],
        *args: Any,
        device: str = "",
        partition: str = "",
    ) -> None:
        """Run one destructive step, turning a command failure into DriveSetupError.

        ``device`` is only passed once the partition table has been rewritten.
        """
        try:
            action(*args)
        except subprocess.CalledProcessError as e:
            raise DriveSetupError(f"{failure}: {error_text(e)}", device, partition) from e

    def _print_recovery_hint(self, error: DriveSetupError, mount_point: Path) -> None:
        print_warning(
            f"/dev/{error.device} was already erased before the failure. "
            "Nothing was rolled back."
        )
        if not error.partition:
            return
        print_info("To finish by hand once the problem is fixed:")
        console.print(f"  sudo blkid -s UUID -o value /dev/{error.partition}")
        console.print(
            f"  echo 'UUID=<uuid> {mount_point} ext4 defaults 0 2' "
            f"| sudo tee -a {self.settings.FSTAB_FILE}"
        )
        console.print(f"  sudo mount -a && sudo chown -R {self.operator.owner} {mount_point}")
