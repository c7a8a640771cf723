"""Pre-flight checks: privilege level and target operating system."""

import logging
import shlex
from pathlib import Path
from typing import Dict

from docker_from_scratch.errors import PreflightError
from docker_from_scratch.host import Host
from docker_from_scratch.settings import LOGGER_NAME, Settings
from docker_from_scratch.ui import Prompter, print_success, print_warning

logger = logging.getLogger(LOGGER_NAME)


def read_os_release(path: Path) -> Dict[str, str]:
    """Parse an os-release file into a dict of KEY -> unquoted value."""
    try:
        content = path.read_text()
    except OSError as e:
        raise PreflightError(
            f"Cannot determine OS ({path}: {e.strerror}). This tool requires Ubuntu."
        ) from e

    values: Dict[str, str] = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            parts = [raw.strip("\"'")]
        values[key.strip()] = parts[0] if parts else ""
    return values


class PreflightChecker:
    def __init__(self, host: Host, prompter: Prompter, settings: Settings):
        self.host = host
        self.prompter = prompter
        self.settings = settings

    def check_privileges(self) -> None:
        """Refuse to run as root and require working sudo."""
        if self.host.effective_uid() == 0:
            raise PreflightError(
                "This tool should NOT be run as root. "
                "Run as a regular user with sudo privileges."
            )
        if not self.host.has_sudo():
            raise PreflightError(
                "This tool requires sudo privileges. "
                "Please ensure your user can use sudo."
            )
        logger.info("Privilege checks passed.")

    def check_os(self) -> Dict[str, str]:
        """
        Verify the distribution and version.

        A different Ubuntu release only warns, and continues if the operator
        explicitly agrees; any other distribution is fatal.
        """
        release = read_os_release(self.settings.OS_RELEASE_FILE)
        os_id = release.get("ID", "")
        version = release.get("VERSION_ID", "")

        if os_id != self.settings.OS_ID:
            raise PreflightError(
                f"This tool requires Ubuntu. Detected: {os_id or 'unknown'}"
            )

        if version != self.settings.OS_VERSION_ID:
            print_warning(
                f"This tool is designed for Ubuntu {self.settings.OS_VERSION_ID}. "
                f"Detected: {version or 'unknown'}"
            )
            if not self.prompter.confirm("Continue anyway?", default=False):
                raise PreflightError("Aborted: unsupported Ubuntu release.")
            logger.warning(f"Continuing on unsupported Ubuntu release {version}")
        else:
            print_success(f"Ubuntu {version} detected")

        return release

    def run(self) -> Dict[str, str]:
        self.check_privileges()
        return self.check_os()
