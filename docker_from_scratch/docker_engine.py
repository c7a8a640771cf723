"""Docker CE installation, the Docker 29+ Portainer compatibility patch, and the shared network."""

import json
import logging
import re
import subprocess
from typing import Dict, Optional

from docker_from_scratch.commands import error_text
from docker_from_scratch.host import Host
from docker_from_scratch.models import Operator, RunConfig, StepResult
from docker_from_scratch.preflight import read_os_release
from docker_from_scratch.settings import LOGGER_NAME, Settings
from docker_from_scratch.ui import (
    Prompter,
    print_info,
    print_section,
    print_step,
    print_success,
    print_warning,
    run_with_progress,
)

logger = logging.getLogger(LOGGER_NAME)


def parse_major_version(version_output: str) -> Optional[int]:
    """Major version from ``docker --version`` output, e.g. 29 for "Docker version 29.0.1"."""
    match = re.search(r"(\d+)", version_output)
    return int(match.group(1)) if match else None


def parse_full_version(version_output: str) -> str:
    match = re.search(r"\d+\.\d+\.\d+", version_output)
    return match.group(0) if match else version_output.strip()


class DockerInstaller:
    def __init__(
        self,
        host: Host,
        prompter: Prompter,
        settings: Settings,
        operator: Operator,
        release: Optional[Dict[str, str]] = None,
    ):
        self.host = host
        self.prompter = prompter
        self.settings = settings
        self.operator = operator
        self.release = release

    # ------------------------------------------------------------
    # Installation
    # ------------------------------------------------------------
    def source_line(self) -> str:
        release = self.release or read_os_release(self.settings.OS_RELEASE_FILE)
        codename = release.get("VERSION_CODENAME", "")
        arch = self.host.packages.architecture()
        return (
            f"deb [arch={arch} signed-by={self.settings.DOCKER_KEYRING}] "
            f"{self.settings.DOCKER_REPO_URL} {codename} stable"
        )

    def install(self, config: RunConfig) -> StepResult:
        """
        Install Docker CE from the vendor repository.

        An existing docker binary means nothing is installed or repaired.
        The daemon configuration is only written when the file is absent.
        """
        print_section("Docker Installation")
        engine = self.host.engine
        files = self.host.files
        s = self.settings

        if engine.available():
            version = parse_full_version(engine.version())
            print_success(f"Docker is already installed (version {version})")
            return StepResult.unchanged("docker_engine", f"version {version}")

        print_step("Removing old Docker packages (if any)...")
        if not self.host.packages.remove(s.LEGACY_DOCKER_PACKAGES):
            logger.debug("Legacy Docker package removal reported an error; continuing")

        print_step("Adding Docker repository...")
        files.makedirs(s.KEYRING_DIR, mode="0755")
        if not files.exists(s.DOCKER_KEYRING):
            self.host.packages.import_key(s.DOCKER_GPG_URL, s.DOCKER_KEYRING)

        line = self.source_line()
        current = ""
        if files.exists(s.DOCKER_SOURCES_LIST):
            current = files.read_text(s.DOCKER_SOURCES_LIST)
        if current.strip() != line:
            files.write_text(s.DOCKER_SOURCES_LIST, line + "\n")

        run_with_progress("Refreshing package lists", self.host.packages.update)
        run_with_progress("Installing Docker", self.host.packages.install, s.DOCKER_PACKAGES)

        print_step("Adding user to docker group...")
        self.host.add_user_to_group(self.operator.name, s.DOCKER_GROUP)

        print_step("Configuring Docker daemon...")
        if files.exists(s.DAEMON_CONFIG_FILE):
            print_info(f"{s.DAEMON_CONFIG_FILE} already exists, leaving it untouched")
        else:
            files.makedirs(s.DAEMON_CONFIG_FILE.parent)
            files.write_text(s.DAEMON_CONFIG_FILE, json.dumps(s.DAEMON_CONFIG, indent=2) + "\n")

        print_step("Enabling Docker services...")
        self.host.services.enable("docker")
        self.host.services.enable("containerd")
        self.host.services.restart("docker")

        version = parse_full_version(engine.version())
        print_success("Docker installed successfully")
        logger.info(f"Docker {version} installed")
        return StepResult.changed("docker_engine", f"installed {version}")

    # ------------------------------------------------------------
    # Compatibility patch
    # ------------------------------------------------------------
    def compat_patch_applied(self) -> bool:
        path = self.settings.COMPAT_OVERRIDE_FILE
        if not self.host.files.exists(path):
            return False
        expected = f"Environment={self.settings.COMPAT_ENVIRONMENT}"
        return any(
            line.strip() == expected
            for line in self.host.files.read_text(path).splitlines()
        )

    def apply_compat_patch(self, config: RunConfig) -> StepResult:
        s = self.settings
        major = parse_major_version(self.host.engine.version())
        if major is None:
            return StepResult.skipped("compat_patch", "Docker version unknown")
        if major < s.COMPAT_MAJOR_THRESHOLD:
            return StepResult.unchanged("compat_patch", f"not needed for Docker {major}")

        print_warning(f"Docker {major} detected. Portainer may have compatibility issues.")
        if self.compat_patch_applied():
            print_success("Portainer compatibility fix already applied")
            return StepResult.unchanged("compat_patch", "already applied")

        print_info(
            f"Docker {s.COMPAT_MAJOR_THRESHOLD}+ changed the minimum API version, "
            "which breaks Portainer 2.x."
        )
        print_info(f"A fix is available that sets {s.COMPAT_ENVIRONMENT}")
        if not self.prompter.confirm("Apply Portainer compatibility fix?", default=True):
            print_warning("Skipping fix. Portainer may not work correctly.")
            return StepResult.skipped("compat_patch", "declined by operator")

        self.host.files.makedirs(s.COMPAT_OVERRIDE_FILE.parent)
        self.host.files.write_text(
            s.COMPAT_OVERRIDE_FILE, f"[Service]\nEnvironment={s.COMPAT_ENVIRONMENT}\n"
        )
        self.host.services.daemon_reload()
        self.host.services.restart("docker")
        print_success("Portainer compatibility fix applied")
        return StepResult.changed("compat_patch", str(s.COMPAT_OVERRIDE_FILE))

    # ------------------------------------------------------------
    # Network
    # ------------------------------------------------------------
    def ensure_network(self, config: RunConfig) -> StepResult:
        name = config.network_name
        print_step(f"Creating Docker network '{name}'...")
        if name in self.host.engine.network_names():
            print_success(f"Network '{name}' already exists")
            return StepResult.unchanged("network", name)

        try:
            self.host.engine.create_network(name)
        except subprocess.CalledProcessError as e:
            # listing can come back empty when docker ls fails
            if "already exists" not in error_text(e):
                raise
            logger.warning(f"docker reports network '{name}' already exists: {error_text(e)}")
            print_success(f"Network '{name}' already exists")
            return StepResult.unchanged("network", name)
        print_success(f"Network '{name}' created")
        return StepResult.changed("network", name)
