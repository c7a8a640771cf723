"""
Data structures shared across the setup phases.

Everything here is a plain value: the tool keeps no state between runs, so
idempotence comes from querying the live host, not from these objects.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional


# ----------------------------------------------------------------
# Utility Functions
# ----------------------------------------------------------------
def format_size(num_bytes: float) -> str:
    """Convert a byte value to a human-readable string."""
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if num_bytes < 1024:
            return f"{num_bytes:.1f} {unit}"
        num_bytes /= 1024
    return f"{num_bytes:.1f} PB"


# ----------------------------------------------------------------
# Run Configuration
# ----------------------------------------------------------------
@dataclass(frozen=True)
class Operator:
    """The non-root user invoking the tool."""

    name: str
    home: Path

    @property
    def owner(self) -> str:
        return f"{self.name}:{self.name}"


@dataclass(frozen=True)
class RunConfig:
    """
    Desired host state collected once per invocation.

    Attributes:
        hostname: Fully qualified hostname
        data_dir: Root directory for persistent container data
        timezone: IANA timezone name
        setup_firewall: Whether UFW is configured
        network_name: External Docker network shared by the services
        compose_dir: Root directory holding one sub-directory per service
        install_npm: Whether Nginx Proxy Manager is deployed
    """

    hostname: str
    data_dir: Path
    timezone: str
    setup_firewall: bool
    network_name: str
    compose_dir: Path
    install_npm: bool

    def data_directories(self) -> List[Path]:
        """Directories that must exist under the data root, parents first."""
        dirs = [self.data_dir, self.data_dir / "portainer"]
        if self.install_npm:
            dirs += [
                self.data_dir / "npm",
                self.data_dir / "npm" / "data",
                self.data_dir / "npm" / "letsencrypt",
            ]
        return dirs

    def service_dir(self, service_name: str) -> Path:
        return self.compose_dir / service_name

    def summary_rows(self) -> List[List[str]]:
        yes_no = {True: "yes", False: "no"}
        return [
            ["Hostname", self.hostname],
            ["Data directory", str(self.data_dir)],
            ["Timezone", self.timezone],
            ["UFW Firewall", yes_no[self.setup_firewall]],
            ["Docker network", self.network_name],
            ["Compose dir", str(self.compose_dir)],
            ["Install NPM", yes_no[self.install_npm]],
        ]


# ----------------------------------------------------------------
# Drives
# ----------------------------------------------------------------
@dataclass(frozen=True)
class DriveCandidate:
    """A whole, unmounted, non-root disk that may become the data volume."""

    name: str
    size: int

    @property
    def path(self) -> str:
        return f"/dev/{self.name}"

    @property
    def size_human(self) -> str:
        return format_size(self.size)

    def __str__(self) -> str:
        return f"{self.path} - {self.size_human}"


# ----------------------------------------------------------------
# Compose Services
# ----------------------------------------------------------------
@dataclass(frozen=True)
class ComposeService:
    """One containerized service rendered into its own compose file."""

    name: str
    image: str
    network: str
    container_name: Optional[str] = None
    restart: str = "unless-stopped"
    command: Optional[str] = None
    ports: List[str] = field(default_factory=list)
    volumes: List[str] = field(default_factory=list)
    environment: List[str] = field(default_factory=list)

    def to_compose(self) -> Dict[str, Any]:
        """Return the compose document as plain data, keys in file order."""
        service: Dict[str, Any] = {
            "image": self.image,
            "container_name": self.container_name or self.name,
            "restart": self.restart,
        }
        if self.command:
            service["command"] = self.command
        if self.ports:
            service["ports"] = list(self.ports)
        if self.volumes:
            service["volumes"] = list(self.volumes)
        service["networks"] = [self.network]
        if self.environment:
            service["environment"] = list(self.environment)

        return {
            "services": {self.name: service},
            "networks": {self.network: {"external": True}},
        }


# ----------------------------------------------------------------
# Step Outcomes
# ----------------------------------------------------------------
class Outcome(str, Enum):
    UNCHANGED = "unchanged"
    CHANGED = "changed"
    SKIPPED = "skipped"
    FAILED = "failed"


@dataclass(frozen=True)
class StepResult:
    """The result of reconciling one resource."""

    name: str
    outcome: Outcome
    message: str = ""

    @classmethod
    def unchanged(cls, name: str, message: str = "") -> "StepResult":
        return cls(name, Outcome.UNCHANGED, message)

    @classmethod
    def changed(cls, name: str, message: str = "") -> "StepResult":
        return cls(name, Outcome.CHANGED, message)

    @classmethod
    def skipped(cls, name: str, message: str = "") -> "StepResult":
        return cls(name, Outcome.SKIPPED, message)

    @classmethod
    def failed(cls, name: str, message: str = "") -> "StepResult":
        return cls(name, Outcome.FAILED, message)

    @property
    def ok(self) -> bool:
        return self.outcome is not Outcome.FAILED


class CheckStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class VerificationCheck:
    """One live-state check performed after deployment."""

    name: str
    status: CheckStatus
    message: str

    @property
    def ok(self) -> bool:
        return self.status is not CheckStatus.FAILED
