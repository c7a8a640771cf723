"""Removal of Nginx Proxy Manager (``--uninstall-npm``)."""

import logging
from pathlib import Path
from typing import List, Optional

from docker_from_scratch.host import Host
from docker_from_scratch.models import Operator
from docker_from_scratch.settings import LOGGER_NAME, Settings
from docker_from_scratch.ui import (
    Prompter,
    console,
    print_info,
    print_section,
    print_step,
    print_success,
    print_warning,
)

logger = logging.getLogger(LOGGER_NAME)


class NpmUninstaller:
    """
    Tears down the NPM container, its compose directory, and on request its
    data and image. Every step after the first confirmation can be declined on
    its own; a partial uninstall is a valid end state.
    """

    def __init__(self, host: Host, prompter: Prompter, settings: Settings, operator: Operator):
        self.host = host
        self.prompter = prompter
        self.settings = settings
        self.operator = operator

    def compose_dir_candidates(self) -> List[Path]:
        tail = Path(self.settings.COMPOSE_DIRNAME) / self.settings.NPM_NAME
        candidates = [self.operator.home / tail, Path("/home") / self.operator.name / tail]
        return list(dict.fromkeys(candidates))

    def data_dir_candidates(self) -> List[Path]:
        candidates = [
            self.settings.DATA_MOUNT_POINT / self.settings.NPM_NAME,
            self.operator.home / self.settings.HOME_DATA_DIRNAME / self.settings.NPM_NAME,
        ]
        return list(dict.fromkeys(candidates))

    def find_compose_dir(self) -> Optional[Path]:
        for candidate in self.compose_dir_candidates():
            if self.host.files.exists(candidate / self.settings.COMPOSE_FILENAME):
                return candidate
        return None

    def container_exists(self) -> bool:
        return self.settings.NPM_NAME in self.host.engine.container_names(include_stopped=True)

    def image_present(self) -> bool:
        return self.settings.NPM_IMAGE in self.host.engine.image_refs()

    def run(self) -> int:
        print_section("Uninstall Nginx Proxy Manager")
        print_warning("This will remove the NPM container and optionally its data.")

        compose_dir = self.find_compose_dir()
        has_container = self.container_exists()

        if not has_container:
            print_info("NPM container not found.")
            if compose_dir is None:
                print_info("No NPM installation detected.")
                logger.info("NPM uninstall: nothing to do")
                return 0

        if not self.prompter.confirm(
            "Are you sure you want to uninstall Nginx Proxy Manager?", default=False
        ):
            print_info("Uninstall cancelled.")
            return 0

        name = self.settings.NPM_NAME
        if has_container:
            print_step("Stopping NPM container...")
            self.host.engine.stop(name)
            print_step("Removing NPM container...")
            self.host.engine.remove(name)
            print_success("NPM container removed")

        if compose_dir is not None:
            print_step("Removing compose directory...")
            self.host.files.remove_tree(compose_dir)
            print_success(f"Compose directory removed: {compose_dir}")

        for data_dir in self.data_dir_candidates():
            if not self.host.files.is_dir(data_dir):
                continue
            print_warning(f"NPM data directory found: {data_dir}")
            if self.prompter.confirm(
                "Remove NPM data (certificates, config)? THIS CANNOT BE UNDONE!", default=False
            ):
                print_step("Removing NPM data...")
                self.host.files.remove_tree(data_dir)
                print_success(f"NPM data removed: {data_dir}")
            else:
                print_info(f"NPM data preserved at: {data_dir}")

        if self.image_present() and self.prompter.confirm(
            "Remove NPM Docker image to free disk space?", default=True
        ):
            print_step("Removing NPM image...")
            if self.host.engine.remove_image(self.settings.NPM_IMAGE):
                print_success("NPM image removed")
            else:
                print_warning(f"Could not remove image {self.settings.NPM_IMAGE}")

        print_section("NPM Uninstall Complete")
        print_success("Nginx Proxy Manager has been uninstalled.")
        print_info("If you had firewall rules for ports 80/443, you may want to remove them:")
        for rule in self.settings.WEB_RULES:
            console.print(f"  sudo ufw delete allow {rule}")
        logger.info("NPM uninstall finished")
        return 0
