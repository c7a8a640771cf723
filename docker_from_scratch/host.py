"""
Capability interfaces over the external tools the setup drives.

Each class wraps one tool (hostnamectl, timedatectl, apt, ufw, systemctl,
lsblk/blkid, parted/mkfs/mount, docker) behind a query side and an apply side.
The reconciliation code only talks to these objects, so tests swap in fakes
instead of touching a real machine.
"""

import json
import logging
import os
import pwd
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Union

from docker_from_scratch.commands import command_exists, run_command, sudo
from docker_from_scratch.settings import LOGGER_NAME

logger = logging.getLogger(LOGGER_NAME)

Runner = Callable[..., subprocess.CompletedProcess]
PathLike = Union[str, Path]

DOCKER_SOCKET = Path("/var/run/docker.sock")

APT_SUMMARY = re.compile(r"(\d+) upgraded, (\d+) newly installed")


def apt_changed(output: str) -> bool:
    """Whether apt reports upgraded or newly installed packages; True when it cannot tell."""
    match = APT_SUMMARY.search(output)
    if not match:
        return True
    return any(int(count) for count in match.groups())


class HostnameControl:
    def __init__(self, runner: Runner = run_command):
        self.run = runner

    def current(self) -> str:
        """Fully qualified hostname, falling back to the short name."""
        result = self.run(["hostname", "-f"], check=False)
        if result.returncode == 0 and result.stdout.strip():
            return result.stdout.strip()
        return self.run(["hostname"]).stdout.strip()

    def set(self, hostname: str) -> None:
        self.run(sudo(["hostnamectl", "set-hostname", hostname]))


class TimezoneControl:
    def __init__(self, runner: Runner = run_command):
        self.run = runner

    def current(self) -> str:
        """Current timezone, or an empty string if timedatectl is unavailable."""
        result = self.run(
            ["timedatectl", "show", "--property=Timezone", "--value"], check=False
        )
        return result.stdout.strip() if result.returncode == 0 else ""

    def set(self, timezone: str) -> None:
        self.run(sudo(["timedatectl", "set-timezone", timezone]))


class PackageManager:
    """apt; upgrade and install report whether apt changed anything."""

    def __init__(self, runner: Runner = run_command):
        self.run = runner

    def update(self) -> None:
        self.run(sudo(["apt", "update"]), timeout=None)

    def upgrade(self) -> bool:
        result = self.run(sudo(["apt", "upgrade", "-y"]), timeout=None)
        return apt_changed(result.stdout)

    def install(self, packages: List[str]) -> bool:
        result = self.run(sudo(["apt", "install", "-y"] + list(packages)), timeout=None)
        return apt_changed(result.stdout)

    def remove(self, packages: List[str]) -> bool:
        """Best-effort removal; packages that are not installed are not an error."""
        result = self.run(
            sudo(["apt", "remove", "-y"] + list(packages)), check=False, timeout=None
        )
        return result.returncode == 0

    def architecture(self) -> str:
        return self.run(["dpkg", "--print-architecture"]).stdout.strip()

    def import_key(self, url: str, keyring: PathLike) -> None:
        """Fetch an ASCII-armored key and store it dearmored in ``keyring``."""
        armored = self.run(["curl", "-fsSL", url]).stdout
        self.run(
            sudo(["gpg", "--batch", "--yes", "--dearmor", "-o", str(keyring)]),
            input_text=armored,
        )
        self.run(sudo(["chmod", "a+r", str(keyring)]))


class Firewall:
    """UFW."""

    def __init__(self, runner: Runner = run_command):
        self.run = runner

    def _status(self) -> str:
        return self.run(sudo(["ufw", "status"]), check=False).stdout

    def is_active(self) -> bool:
        return "Status: active" in self._status()

    def allowed_rules(self) -> Set[str]:
        """Rules such as ``22/tcp`` currently allowed (only listed while active)."""
        rules = set()
        for line in self._status().splitlines():
            parts = line.split()
            if len(parts) >= 2 and "ALLOW" in parts[1:4]:
                rules.add(parts[0])
        return rules

    def set_default(self, policy: str, direction: str) -> None:
        self.run(sudo(["ufw", "default", policy, direction]))

    def allow(self, rule: str, comment: str = "") -> bool:
        """Add an allow rule; an existing rule is not an error."""
        cmd = ["ufw", "allow", rule]
        if comment:
            cmd += ["comment", comment]
        result = self.run(sudo(cmd), check=False)
        if result.returncode != 0:
            logger.debug(f"ufw allow {rule} exited {result.returncode}")
        return result.returncode == 0

    def enable(self) -> None:
        self.run(sudo(["ufw", "--force", "enable"]))


class ServiceManager:
    """systemd."""

    def __init__(self, runner: Runner = run_command):
        self.run = runner

    def is_active(self, unit: str) -> bool:
        return self.run(["systemctl", "is-active", "--quiet", unit], check=False).returncode == 0

    def enable(self, unit: str) -> None:
        self.run(sudo(["systemctl", "enable", unit]))

    def restart(self, unit: str) -> None:
        self.run(sudo(["systemctl", "restart", unit]))

    def daemon_reload(self) -> None:
        self.run(sudo(["systemctl", "daemon-reload"]))


class BlockDevices:
    def __init__(self, runner: Runner = run_command):
        self.run = runner

    def root_disk(self) -> Optional[str]:
        """Name of the disk backing ``/`` (e.g. ``sda``), if it can be found."""
        source = self.run(["findmnt", "-n", "-o", "SOURCE", "/"], check=False).stdout.strip()
        if not source:
            return None
        result = self.run(["lsblk", "-no", "PKNAME", source], check=False)
        for line in result.stdout.splitlines():
            if line.strip():
                return line.strip()
        return None

    def list_tree(self) -> List[Dict[str, Any]]:
        """Block devices with their children, as reported by ``lsblk --json``."""
        result = self.run(
            ["lsblk", "--json", "-b", "-o", "NAME,SIZE,TYPE,MOUNTPOINT"], check=False
        )
        if result.returncode != 0 or not result.stdout.strip():
            return []
        return json.loads(result.stdout).get("blockdevices", [])

    def is_block_device(self, name: str) -> bool:
        return Path(f"/dev/{name}").is_block_device()

    def filesystem_uuid(self, partition: str) -> str:
        result = self.run(
            sudo(["blkid", "-s", "UUID", "-o", "value", f"/dev/{partition}"]), check=False
        )
        return result.stdout.strip()


class DiskTools:
    """parted, mkfs.ext4, mount and df."""

    def __init__(self, runner: Runner = run_command):
        self.run = runner

    def make_gpt_label(self, device: str) -> None:
        self.run(sudo(["parted", "-s", f"/dev/{device}", "mklabel", "gpt"]))

    def make_partition(self, device: str) -> None:
        self.run(
            sudo(["parted", "-s", f"/dev/{device}", "mkpart", "primary", "ext4", "0%", "100%"])
        )

    def format_ext4(self, partition: str) -> None:
        self.run(sudo(["mkfs.ext4", "-F", f"/dev/{partition}"]), timeout=None)

    def mount_all(self) -> None:
        self.run(sudo(["mount", "-a"]))

    def is_mountpoint(self, path: PathLike) -> bool:
        return self.run(["mountpoint", "-q", str(path)], check=False).returncode == 0

    def usage_report(self, path: PathLike) -> str:
        return self.run(["df", "-h", str(path)], check=False).stdout

    def free_space(self, path: PathLike) -> str:
        result = self.run(["df", "-h", "--output=avail", str(path)], check=False)
        lines = [line.strip() for line in result.stdout.splitlines() if line.strip()]
        return lines[-1] if len(lines) > 1 else "unknown"


class ContainerEngine:
    """
    The docker CLI.

    Commands go through sudo while the invoking user cannot reach the docker
    socket yet (group membership only applies after the next login).
    """

    def __init__(self, runner: Runner = run_command, socket: Path = DOCKER_SOCKET):
        self.run = runner
        self.socket = socket

    def _docker(self, args: List[str]) -> List[str]:
        cmd = ["docker"] + args
        if self.socket.exists() and not os.access(str(self.socket), os.R_OK | os.W_OK):
            return sudo(cmd)
        return cmd

    def _lines(self, args: List[str]) -> List[str]:
        result = self.run(self._docker(args), check=False)
        if result.returncode != 0:
            return []
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    def available(self) -> bool:
        return command_exists("docker")

    def version(self) -> str:
        return self.run(["docker", "--version"], check=False).stdout.strip()

    def network_names(self) -> List[str]:
        return self._lines(["network", "ls", "--format", "{{.Name}}"])

    def create_network(self, name: str) -> None:
        self.run(self._docker(["network", "create", name]))

    def container_names(self, include_stopped: bool = False) -> List[str]:
        args = ["ps", "-a"] if include_stopped else ["ps"]
        return self._lines(args + ["--format", "{{.Names}}"])

    def compose_pull(self, project_dir: PathLike) -> None:
        self.run(self._docker(["compose", "pull"]), cwd=project_dir, timeout=None)

    def compose_up(self, project_dir: PathLike) -> None:
        self.run(self._docker(["compose", "up", "-d"]), cwd=project_dir, timeout=None)

    def stop(self, name: str) -> bool:
        return self.run(self._docker(["stop", name]), check=False).returncode == 0

    def remove(self, name: str) -> bool:
        return self.run(self._docker(["rm", name]), check=False).returncode == 0

    def image_refs(self) -> List[str]:
        return self._lines(["images", "--format", "{{.Repository}}:{{.Tag}}"])

    def remove_image(self, ref: str) -> bool:
        return self.run(self._docker(["rmi", ref]), check=False).returncode == 0


class PrivilegedFiles:
    """Reads directly, writes system paths through sudo."""

    def __init__(self, runner: Runner = run_command):
        self.run = runner

    def exists(self, path: PathLike) -> bool:
        return Path(path).exists()

    def is_dir(self, path: PathLike) -> bool:
        return Path(path).is_dir()

    def read_text(self, path: PathLike) -> str:
        try:
            return Path(path).read_text()
        except PermissionError:
            return self.run(sudo(["cat", str(path)])).stdout

    def write_text(self, path: PathLike, content: str) -> None:
        self.run(sudo(["tee", str(path)]), input_text=content)

    def append_line(self, path: PathLike, line: str) -> None:
        self.run(sudo(["tee", "-a", str(path)]), input_text=line.rstrip("\n") + "\n")

    def makedirs(self, path: PathLike, mode: Optional[str] = None) -> None:
        if mode:
            self.run(sudo(["install", "-m", mode, "-d", str(path)]))
        else:
            self.run(sudo(["mkdir", "-p", str(path)]))

    def chown_recursive(self, path: PathLike, owner: str) -> None:
        self.run(sudo(["chown", "-R", owner, str(path)]))

    def remove_tree(self, path: PathLike) -> None:
        self.run(sudo(["rm", "-rf", str(path)]))

    def owner(self, path: PathLike) -> str:
        uid = Path(path).stat().st_uid
        try:
            return pwd.getpwuid(uid).pw_name
        except KeyError:
            return str(uid)


@dataclass
class Host:
    """Everything the setup can query or change on the local machine."""

    hostname: HostnameControl
    timezone: TimezoneControl
    packages: PackageManager
    firewall: Firewall
    services: ServiceManager
    block_devices: BlockDevices
    disks: DiskTools
    engine: ContainerEngine
    files: PrivilegedFiles
    runner: Runner = run_command

    @classmethod
    def local(cls, runner: Runner = run_command) -> "Host":
        return cls(
            hostname=HostnameControl(runner),
            timezone=TimezoneControl(runner),
            packages=PackageManager(runner),
            firewall=Firewall(runner),
            services=ServiceManager(runner),
            block_devices=BlockDevices(runner),
            disks=DiskTools(runner),
            engine=ContainerEngine(runner),
            files=PrivilegedFiles(runner),
            runner=runner,
        )

    def effective_uid(self) -> int:
        return os.geteuid()

    def has_sudo(self) -> bool:
        """Validate (and cache) sudo credentials, prompting for a password if needed."""
        return self.runner(["sudo", "-v"], check=False, capture_output=False).returncode == 0

    def add_user_to_group(self, user: str, group: str) -> None:
        self.runner(sudo(["usermod", "-aG", group, user]))

    def primary_ip(self) -> str:
        result = self.runner(["hostname", "-I"], check=False)
        addresses = result.stdout.split()
        return addresses[0] if addresses else "127.0.0.1"
