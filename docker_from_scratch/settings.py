"""Tool-wide constants for DockerFromScratch."""

import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, List

# ----------------------------------------------------------------
# Global Configuration
# ----------------------------------------------------------------
LOGGER_NAME: str = "docker_from_scratch"
OPERATION_TIMEOUT: int = 300  # seconds; apt and image pulls can be slow
DEFAULT_LOG_LEVEL: str = os.environ.get("DFS_LOG_LEVEL", "WARNING").upper()
DEFAULT_LOG_FILE: Path = Path(
    os.environ.get(
        "DFS_LOG_FILE",
        str(Path.home() / ".local" / "state" / "docker-from-scratch" / "setup.log"),
    )
)


@dataclass(frozen=True)
class Settings:
    """Fixed parameters of the setup process (not asked interactively)."""

    # Target operating system
    OS_RELEASE_FILE: Path = Path("/etc/os-release")
    OS_ID: str = "ubuntu"
    OS_VERSION_ID: str = "24.04"

    # Storage
    DATA_MOUNT_POINT: Path = Path("/data")
    HOME_DATA_DIRNAME: str = "docker-data"
    COMPOSE_DIRNAME: str = "docker-compose"
    FSTAB_FILE: Path = Path("/etc/fstab")
    PARTITION_POLL_ATTEMPTS: int = 5
    PARTITION_POLL_INTERVAL: float = 1.0
    PARTITION_SETTLE_DELAY: float = 2.0

    # Interactive defaults
    DEFAULT_NETWORK: str = "proxy-network"
    DEFAULT_TIMEZONE: str = "UTC"
    COMMON_TIMEZONES: List[str] = field(
        default_factory=lambda: [
            "America/New_York",
            "America/Los_Angeles",
            "America/Mexico_City",
            "Europe/London",
            "UTC",
        ]
    )

    # Packages
    ESSENTIAL_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "curl",
            "wget",
            "git",
            "htop",
            "nano",
            "ca-certificates",
            "gnupg",
            "lsb-release",
        ]
    )
    FIREWALL_PACKAGE: str = "ufw"
    LEGACY_DOCKER_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "docker",
            "docker-engine",
            "docker.io",
            "containerd",
            "runc",
        ]
    )
    DOCKER_PACKAGES: List[str] = field(
        default_factory=lambda: [
            "docker-ce",
            "docker-ce-cli",
            "containerd.io",
            "docker-buildx-plugin",
            "docker-compose-plugin",
        ]
    )

    # Docker repository and daemon
    DOCKER_GPG_URL: str = "https://download.docker.com/linux/ubuntu/gpg"
    DOCKER_REPO_URL: str = "https://download.docker.com/linux/ubuntu"
    KEYRING_DIR: Path = Path("/etc/apt/keyrings")
    DOCKER_KEYRING: Path = Path("/etc/apt/keyrings/docker.gpg")
    DOCKER_SOURCES_LIST: Path = Path("/etc/apt/sources.list.d/docker.list")
    DOCKER_GROUP: str = "docker"
    DAEMON_CONFIG_FILE: Path = Path("/etc/docker/daemon.json")
    DAEMON_CONFIG: Dict[str, Any] = field(
        default_factory=lambda: {
            "log-driver": "json-file",
            "log-opts": {"max-size": "10m", "max-file": "3"},
            "storage-driver": "overlay2",
        }
    )

    # Docker 29+ raised the minimum API version, which breaks Portainer 2.x
    COMPAT_MAJOR_THRESHOLD: int = 29
    COMPAT_OVERRIDE_FILE: Path = Path(
        "/etc/systemd/system/docker.service.d/override.conf"
    )
    COMPAT_ENVIRONMENT: str = "DOCKER_MIN_API_VERSION=1.24"

    # Services
    COMPOSE_FILENAME: str = "docker-compose.yml"
    PORTAINER_NAME: str = "portainer"
    PORTAINER_IMAGE: str = "portainer/portainer-ce:latest"
    NPM_NAME: str = "npm"
    NPM_IMAGE: str = "jc21/nginx-proxy-manager:latest"
    NPM_STARTUP_DELAY: float = 10.0

    # Firewall: (rule, comment)
    SSH_RULE: str = "22/tcp"
    WEB_RULES: List[str] = field(default_factory=lambda: ["80/tcp", "443/tcp"])
    RULE_COMMENTS: Dict[str, str] = field(
        default_factory=lambda: {
            "22/tcp": "SSH",
            "80/tcp": "HTTP",
            "443/tcp": "HTTPS",
        }
    )

    def to_dict(self) -> Dict[str, Any]:
        """Convert the settings to a dictionary."""
        return asdict(self)
