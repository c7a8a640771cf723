"""Interactive collection of the desired host state."""

import logging
from pathlib import Path
from typing import Optional

from docker_from_scratch.drives import DriveSetup
from docker_from_scratch.host import Host
from docker_from_scratch.models import Operator, RunConfig
from docker_from_scratch.settings import LOGGER_NAME, Settings
from docker_from_scratch.ui import (
    Prompter,
    print_info,
    print_key_values,
    print_section,
    print_warning,
)

logger = logging.getLogger(LOGGER_NAME)


class ConfigurationResolver:
    """
    Builds the RunConfig for this invocation.

    Each prompt defaults to a value detected from the live system, so pressing
    Enter through every question reproduces the current state. Drive setup may
    run while the data directory default is being worked out; nothing else
    changes the host before the summary is confirmed.
    """

    def __init__(
        self,
        host: Host,
        prompter: Prompter,
        settings: Settings,
        operator: Operator,
        drive_setup: DriveSetup,
    ):
        self.host = host
        self.prompter = prompter
        self.settings = settings
        self.operator = operator
        self.drive_setup = drive_setup

    def default_data_dir(self) -> Path:
        mount_point = self.settings.DATA_MOUNT_POINT

        if self.host.disks.is_mountpoint(mount_point):
            print_info(f"Detected {mount_point} as a separate mount point.")
            return mount_point
        if self.host.files.is_dir(mount_point):
            print_info(f"Directory {mount_point} exists.")
            return mount_point

        print_info(f"No separate {mount_point} partition detected.")
        if self.drive_setup.offer():
            return mount_point

        print_info("For single-drive setups, using home directory is recommended.")
        return self.operator.home / self.settings.HOME_DATA_DIRNAME

    def warn_if_root_filesystem(self, data_dir: Path) -> None:
        mount_point = self.settings.DATA_MOUNT_POINT
        if data_dir != mount_point:
            return
        if self.host.disks.is_mountpoint(mount_point) or self.host.files.is_dir(mount_point):
            return
        print_warning(f"{mount_point} will be created on the root filesystem.")
        print_info("This is fine, but ensure your root partition has enough space.")
        print_info(f"Current free space on /: {self.host.disks.free_space('/')}")

    def resolve(self) -> Optional[RunConfig]:
        """Ask every question; return None if the operator rejects the summary."""
        print_section("Configuration")
        print_info("Please provide the following configuration details.")

        current_hostname = self.host.hostname.current()
        hostname = self.prompter.ask("Fully qualified hostname", current_hostname) or current_hostname

        data_default = self.default_data_dir()
        data_dir = Path(
            self.prompter.ask("Data directory for persistent storage", str(data_default))
        ).expanduser()
        self.warn_if_root_filesystem(data_dir)

        current_tz = self.host.timezone.current() or self.settings.DEFAULT_TIMEZONE
        print_info(f"Common timezones: {', '.join(self.settings.COMMON_TIMEZONES)}")
        timezone = self.prompter.ask("Timezone", current_tz)

        web_ports = ", ".join(rule.split("/")[0] for rule in self.settings.WEB_RULES)
        setup_firewall = self.prompter.confirm(
            f"Configure UFW firewall (ports 22, {web_ports})?", default=True
        )

        network_name = self.prompter.ask(
            "Docker network name for proxied containers", self.settings.DEFAULT_NETWORK
        )
        compose_dir = Path(
            self.prompter.ask(
                "Directory for docker-compose files",
                str(self.operator.home / self.settings.COMPOSE_DIRNAME),
            )
        ).expanduser()

        print_info("Nginx Proxy Manager provides reverse proxy with Let's Encrypt SSL.")
        install_npm = self.prompter.confirm("Install Nginx Proxy Manager?", default=True)

        config = RunConfig(
            hostname=hostname,
            data_dir=data_dir,
            timezone=timezone,
            setup_firewall=setup_firewall,
            network_name=network_name,
            compose_dir=compose_dir,
            install_npm=install_npm,
        )

        print_section("Configuration Summary")
        print_key_values(config.summary_rows())

        if not self.prompter.confirm("Proceed with this configuration?", default=True):
            print_info("Exiting. Run the tool again to reconfigure.")
            logger.info("Configuration declined by operator")
            return None

        logger.info(f"Configuration accepted: {config}")
        return config
