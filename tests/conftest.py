"""
Pytest configuration and shared fixtures for docker-from-scratch tests.

The fakes here keep just enough state to behave like a real host: a firewall
remembers its rules, mounting reads fstab, ``docker compose up`` starts a
container named after the project directory. Every state change is recorded
in ``host.mutations`` so tests can assert that a run changed nothing.
"""

import subprocess
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest

from docker_from_scratch.host import Host
from docker_from_scratch.models import Operator, RunConfig
from docker_from_scratch.settings import Settings

Mutation = Tuple[str, str, str]

UBUNTU_2404 = """\
PRETTY_NAME="Ubuntu 24.04.1 LTS"
NAME="Ubuntu"
VERSION_ID="24.04"
VERSION="24.04.1 LTS (Noble Numbat)"
VERSION_CODENAME=noble
ID=ubuntu
ID_LIKE=debian
"""


# ==============================================================================
# Command Runner
# ==============================================================================


class RecordingRunner:
    """Stands in for ``run_command``; answers by the joined command line."""

    def __init__(self, responses: Optional[Dict[str, Tuple[int, str]]] = None):
        self.responses = responses or {}
        self.calls: List[Tuple[List[str], Dict[str, Any]]] = []

    def __call__(self, cmd: List[str], check: bool = True, **kwargs: Any):
        self.calls.append((list(cmd), dict(kwargs, check=check)))
        returncode, stdout = self.responses.get(" ".join(cmd), (0, ""))
        if check and returncode != 0:
            raise subprocess.CalledProcessError(returncode, cmd, output=stdout, stderr="boom")
        return subprocess.CompletedProcess(cmd, returncode, stdout=stdout, stderr="")

    @property
    def commands(self) -> List[str]:
        return [" ".join(cmd) for cmd, _ in self.calls]


# ==============================================================================
# Stateful Fakes
# ==============================================================================


class _Recorder:
    component = ""

    def __init__(self, log: List[Mutation]):
        self.log = log

    def record(self, action: str, arg: Any = "") -> None:
        self.log.append((self.component, action, str(arg)))


class FakeHostname(_Recorder):
    component = "hostname"

    def __init__(self, log, name: str = "ubuntu"):
        super().__init__(log)
        self.name = name

    def current(self) -> str:
        return self.name

    def set(self, hostname: str) -> None:
        self.record("set", hostname)
        self.name = hostname


class FakeTimezone(_Recorder):
    component = "timezone"

    def __init__(self, log, zone: str = "Etc/UTC"):
        super().__init__(log)
        self.zone = zone

    def current(self) -> str:
        return self.zone

    def set(self, timezone: str) -> None:
        self.record("set", timezone)
        self.zone = timezone


class FakePackages(_Recorder):
    component = "packages"

    def __init__(self, log, files: "FakeFiles"):
        super().__init__(log)
        self.files = files
        self.installed: Set[str] = set()
        self.pending_upgrades = True

    def update(self) -> None:
        self.record("update")

    def upgrade(self) -> bool:
        self.record("upgrade")
        upgraded, self.pending_upgrades = self.pending_upgrades, False
        return upgraded

    def install(self, packages: List[str]) -> bool:
        self.record("install", " ".join(packages))
        new = set(packages) - self.installed
        self.installed.update(packages)
        return bool(new)

    def remove(self, packages: List[str]) -> bool:
        self.record("remove", " ".join(packages))
        return False

    def architecture(self) -> str:
        return "amd64"

    def import_key(self, url: str, keyring) -> None:
        self.record("import_key", url)
        self.files.contents[Path(keyring)] = "KEY"


class FakeFirewall(_Recorder):
    component = "firewall"

    def __init__(self, log, active: bool = False, rules: Optional[Set[str]] = None):
        super().__init__(log)
        self.active = active
        self.rules = set(rules or ())
        self.defaults: Dict[str, str] = {}

    def is_active(self) -> bool:
        return self.active

    def allowed_rules(self) -> Set[str]:
        return set(self.rules) if self.active else set()

    def set_default(self, policy: str, direction: str) -> None:
        self.record("default", f"{policy} {direction}")
        self.defaults[direction] = policy

    def allow(self, rule: str, comment: str = "") -> bool:
        self.record("allow", rule)
        self.rules.add(rule)
        return True

    def enable(self) -> None:
        self.record("enable")
        self.active = True


class FakeServices(_Recorder):
    component = "services"

    def __init__(self, log, active: Optional[Set[str]] = None):
        super().__init__(log)
        self.active = set(active if active is not None else {"docker"})
        self.enabled: Set[str] = set()

    def is_active(self, unit: str) -> bool:
        return unit in self.active

    def enable(self, unit: str) -> None:
        self.record("enable", unit)
        self.enabled.add(unit)

    def restart(self, unit: str) -> None:
        self.record("restart", unit)
        self.active.add(unit)

    def daemon_reload(self) -> None:
        self.record("daemon_reload")


class FakeBlockDevices(_Recorder):
    component = "block_devices"

    def __init__(self, log, tree=None, root: Optional[str] = "sda", uuid: str = ""):
        super().__init__(log)
        self.tree = list(tree or [])
        self.root = root
        self.nodes: Set[str] = set()
        self.uuid = uuid

    def root_disk(self) -> Optional[str]:
        return self.root

    def list_tree(self):
        return self.tree

    def is_block_device(self, name: str) -> bool:
        return name in self.nodes

    def filesystem_uuid(self, partition: str) -> str:
        return self.uuid


class FakeDisks(_Recorder):
    component = "disks"

    def __init__(self, log, files: "FakeFiles", fstab: Path, blocks: FakeBlockDevices):
        super().__init__(log)
        self.files = files
        self.fstab = fstab
        self.blocks = blocks
        self.mountpoints: Set[Path] = set()
        self.fail_mount = False

    def make_gpt_label(self, device: str) -> None:
        self.record("mklabel", device)

    def make_partition(self, device: str) -> None:
        self.record("mkpart", device)
        self.blocks.nodes.add(device + ("p1" if device[-1].isdigit() else "1"))

    def format_ext4(self, partition: str) -> None:
        self.record("mkfs", partition)

    def mount_all(self) -> None:
        self.record("mount_all")
        if self.fail_mount:
            raise subprocess.CalledProcessError(32, ["mount", "-a"], stderr="mount: wrong fs type")
        for line in self.files.contents.get(self.fstab, "").splitlines():
            fields = line.split()
            if len(fields) >= 2 and not fields[0].startswith("#"):
                self.mountpoints.add(Path(fields[1]))

    def is_mountpoint(self, path) -> bool:
        return Path(path) in self.mountpoints

    def usage_report(self, path) -> str:
        return f"Filesystem Size Used Avail Use% Mounted on\n/dev/sdb1 1.8T 28K 1.7T 1% {path}"

    def free_space(self, path) -> str:
        return "42G"


class FakeEngine(_Recorder):
    component = "engine"

    def __init__(
        self,
        log,
        installed: bool = True,
        version: str = "Docker version 27.3.1, build ce12230",
    ):
        super().__init__(log)
        self.installed = installed
        self.version_text = version
        self.networks: List[str] = ["bridge", "host", "none"]
        self.containers: Dict[str, bool] = {}
        self.images: List[str] = []

    def available(self) -> bool:
        return self.installed

    def version(self) -> str:
        return self.version_text if self.installed else ""

    def network_names(self) -> List[str]:
        return list(self.networks)

    def create_network(self, name: str) -> None:
        self.record("create_network", name)
        self.networks.append(name)

    def container_names(self, include_stopped: bool = False) -> List[str]:
        return [n for n, running in self.containers.items() if running or include_stopped]

    def compose_pull(self, project_dir) -> None:
        self.record("compose_pull", project_dir)

    def compose_up(self, project_dir) -> None:
        self.record("compose_up", project_dir)
        self.containers[Path(project_dir).name] = True

    def stop(self, name: str) -> bool:
        self.record("stop", name)
        if name in self.containers:
            self.containers[name] = False
        return True

    def remove(self, name: str) -> bool:
        self.record("rm", name)
        return self.containers.pop(name, None) is not None

    def image_refs(self) -> List[str]:
        return list(self.images)

    def remove_image(self, ref: str) -> bool:
        self.record("rmi", ref)
        if ref in self.images:
            self.images.remove(ref)
            return True
        return False


class FakeFiles(_Recorder):
    component = "files"

    def __init__(self, log):
        super().__init__(log)
        self.contents: Dict[Path, str] = {}
        self.dirs: Set[Path] = set()
        self.owners: Dict[Path, str] = {}

    def exists(self, path) -> bool:
        path = Path(path)
        return path in self.contents or path in self.dirs

    def is_dir(self, path) -> bool:
        return Path(path) in self.dirs

    def read_text(self, path) -> str:
        path = Path(path)
        if path not in self.contents:
            raise FileNotFoundError(2, "No such file or directory", str(path))
        return self.contents[path]

    def write_text(self, path, content: str) -> None:
        self.record("write", path)
        self.contents[Path(path)] = content

    def append_line(self, path, line: str) -> None:
        self.record("append", path)
        path = Path(path)
        self.contents[path] = self.contents.get(path, "") + line.rstrip("\n") + "\n"

    def makedirs(self, path, mode: Optional[str] = None) -> None:
        self.record("makedirs", path)
        path = Path(path)
        self.dirs.update([path] + list(path.parents))

    def chown_recursive(self, path, owner: str) -> None:
        self.record("chown", path)
        path = Path(path)
        user = owner.split(":")[0]
        for d in self.dirs:
            if d == path or path in d.parents:
                self.owners[d] = user

    def remove_tree(self, path) -> None:
        self.record("remove_tree", path)
        path = Path(path)
        self.dirs = {d for d in self.dirs if d != path and path not in d.parents}
        self.contents = {
            p: c for p, c in self.contents.items() if p != path and path not in p.parents
        }

    def owner(self, path) -> str:
        return self.owners.get(Path(path), "root")


class FakeHost(Host):
    """A Host assembled from the fakes above."""

    def __init__(self, settings: Settings, uid: int = 1000, sudo: bool = True):
        self.mutations: List[Mutation] = []
        log = self.mutations
        files = FakeFiles(log)
        blocks = FakeBlockDevices(log)
        super().__init__(
            hostname=FakeHostname(log),
            timezone=FakeTimezone(log),
            packages=FakePackages(log, files),
            firewall=FakeFirewall(log),
            services=FakeServices(log),
            block_devices=blocks,
            disks=FakeDisks(log, files, settings.FSTAB_FILE, blocks),
            engine=FakeEngine(log),
            files=files,
            runner=RecordingRunner(),
        )
        self.uid = uid
        self.sudo = sudo
        self.groups: List[Tuple[str, str]] = []

    def effective_uid(self) -> int:
        return self.uid

    def has_sudo(self) -> bool:
        return self.sudo

    def add_user_to_group(self, user: str, group: str) -> None:
        self.mutations.append(("host", "usermod", f"{user}:{group}"))
        self.groups.append((user, group))

    def primary_ip(self) -> str:
        return "192.0.2.10"

    def changes(self, component: str) -> List[Mutation]:
        return [m for m in self.mutations if m[0] == component]


# ==============================================================================
# Prompts
# ==============================================================================


class ScriptedPrompter:
    """
    Answers prompts from a mapping of question fragment -> answer.

    Unmatched questions take the prompt's default (literal confirmations and
    numbered choices fail). Every question asked is recorded.
    """

    def __init__(self, answers: Optional[Dict[str, Any]] = None):
        self.answers = dict(answers or {})
        self.asked: List[str] = []

    def _lookup(self, question: str):
        self.asked.append(question)
        for fragment, answer in self.answers.items():
            if fragment in question:
                return True, answer
        return False, None

    def confirm(self, question: str, default: bool = True) -> bool:
        found, answer = self._lookup(question)
        return bool(answer) if found else default

    def ask(self, question: str, default: str = "") -> str:
        found, answer = self._lookup(question)
        return (answer or default).strip() if found else default

    def ask_literal(self, question: str, expected: str) -> bool:
        found, answer = self._lookup(question)
        return found and answer == expected

    def choose(self, question: str, count: int) -> Optional[int]:
        found, answer = self._lookup(question)
        if found and str(answer).isdigit() and 1 <= int(answer) <= count:
            return int(answer) - 1
        return None

    def was_asked(self, fragment: str) -> bool:
        return any(fragment in q for q in self.asked)


# ==============================================================================
# Fixtures
# ==============================================================================


@pytest.fixture
def os_release(tmp_path) -> Path:
    path = tmp_path / "os-release"
    path.write_text(UBUNTU_2404)
    return path


@pytest.fixture
def settings(os_release, tmp_path) -> Settings:
    """Default settings reading os-release from a temp file."""
    return Settings(OS_RELEASE_FILE=os_release, NPM_STARTUP_DELAY=0.0)


@pytest.fixture
def host(settings) -> FakeHost:
    return FakeHost(settings)


@pytest.fixture
def operator() -> Operator:
    return Operator(name="u", home=Path("/home/u"))


@pytest.fixture
def prompter() -> ScriptedPrompter:
    return ScriptedPrompter()


@pytest.fixture
def no_sleep():
    """Replacement for time.sleep that records the requested delays."""
    delays: List[float] = []

    def sleep(seconds: float) -> None:
        delays.append(seconds)

    sleep.delays = delays
    return sleep


@pytest.fixture
def run_config(tmp_path) -> RunConfig:
    return RunConfig(
        hostname="host1.example.com",
        data_dir=Path("/data"),
        timezone="UTC",
        setup_firewall=True,
        network_name="proxy-network",
        compose_dir=tmp_path / "docker-compose",
        install_npm=True,
    )


@pytest.fixture
def lsblk_tree() -> List[Dict[str, Any]]:
    """lsblk --json output: root disk sda, spare sdb, mounted sdc, nvme spare."""
    return [
        {
            "name": "sda",
            "size": 256060514304,
            "type": "disk",
            "mountpoint": None,
            "children": [
                {"name": "sda1", "size": 1048576, "type": "part", "mountpoint": "/boot/efi"},
                {"name": "sda2", "size": 256058000000, "type": "part", "mountpoint": "/"},
            ],
        },
        {"name": "sdb", "size": 2000398934016, "type": "disk", "mountpoint": None},
        {
            "name": "sdc",
            "size": 500107862016,
            "type": "disk",
            "mountpoint": None,
            "children": [
                {"name": "sdc1", "size": 500106000000, "type": "part", "mountpoint": "/mnt/backup"}
            ],
        },
        {"name": "nvme0n1", "size": 1000204886016, "type": "disk", "mountpoint": None},
        {"name": "sr0", "size": 1073741312, "type": "rom", "mountpoint": None},
        {"name": "loop0", "size": 67108864, "type": "loop", "mountpoint": "/snap/core/1"},
    ]
