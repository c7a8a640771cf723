"""
System preparation: hostname, timezone, packages, data directories, firewall.

Every method compares the desired value with what the host reports and only
applies the difference. A failing external command raises; the pipeline
records it as a FAILED step.
"""

import logging
from typing import List

from docker_from_scratch.host import Host
from docker_from_scratch.models import Operator, RunConfig, StepResult
from docker_from_scratch.settings import LOGGER_NAME, Settings
from docker_from_scratch.ui import print_info, print_step, print_success, run_with_progress

logger = logging.getLogger(LOGGER_NAME)


class SystemReconciler:
    def __init__(self, host: Host, settings: Settings, operator: Operator):
        self.host = host
        self.settings = settings
        self.operator = operator

    def hostname(self, config: RunConfig) -> StepResult:
        print_step(f"Setting hostname to {config.hostname}...")
        if self.host.hostname.current() == config.hostname:
            print_success(f"Hostname already set to {config.hostname}")
            return StepResult.unchanged("hostname", config.hostname)

        self.host.hostname.set(config.hostname)
        print_success(f"Hostname set to {config.hostname}")
        return StepResult.changed("hostname", config.hostname)

    def timezone(self, config: RunConfig) -> StepResult:
        print_step(f"Setting timezone to {config.timezone}...")
        if self.host.timezone.current() == config.timezone:
            print_success(f"Timezone already set to {config.timezone}")
            return StepResult.unchanged("timezone", config.timezone)

        self.host.timezone.set(config.timezone)
        print_success(f"Timezone set to {config.timezone}")
        return StepResult.changed("timezone", config.timezone)

    def update_system(self, config: RunConfig) -> StepResult:
        run_with_progress("Refreshing package lists", self.host.packages.update)
        upgraded = run_with_progress("Upgrading system packages", self.host.packages.upgrade)
        if not upgraded:
            print_info("System packages are already up to date")
            return StepResult.unchanged("system_update", "nothing to upgrade")
        return StepResult.changed("system_update", "apt update && apt upgrade")

    def required_packages(self, config: RunConfig) -> List[str]:
        packages = list(self.settings.ESSENTIAL_PACKAGES)
        if config.setup_firewall:
            packages.append(self.settings.FIREWALL_PACKAGE)
        return packages

    def packages(self, config: RunConfig) -> StepResult:
        packages = self.required_packages(config)
        installed = run_with_progress(
            "Installing essential packages", self.host.packages.install, packages
        )
        if not installed:
            return StepResult.unchanged("packages", "already installed")
        return StepResult.changed("packages", " ".join(packages))

    def data_directories(self, config: RunConfig) -> StepResult:
        print_step(f"Setting up data directory at {config.data_dir}...")
        files = self.host.files

        created = []
        for directory in config.data_directories():
            if not files.is_dir(directory):
                files.makedirs(directory)
                created.append(str(directory))

        if not created and files.owner(config.data_dir) == self.operator.name:
            print_success("Data directory structure already in place")
            return StepResult.unchanged("data_directories", str(config.data_dir))

        files.chown_recursive(config.data_dir, self.operator.owner)
        if created:
            logger.info(f"Created data directories: {', '.join(created)}")
        print_success("Data directory structure created and ownership set")
        return StepResult.changed(
            "data_directories", f"created {len(created)}, owner {self.operator.name}"
        )

    def firewall_rules(self, config: RunConfig) -> List[str]:
        rules = [self.settings.SSH_RULE]
        if config.install_npm:
            rules += self.settings.WEB_RULES
        return rules

    def firewall(self, config: RunConfig) -> StepResult:
        if not config.setup_firewall:
            print_info("Skipping firewall configuration")
            return StepResult.skipped("firewall", "not requested")

        print_step("Configuring UFW firewall...")
        fw = self.host.firewall
        was_active = fw.is_active()
        changes = []

        if was_active:
            print_info("UFW is already active, adding rules...")
        else:
            # Only set default policies on a firewall we are turning on
            fw.set_default("deny", "incoming")
            fw.set_default("allow", "outgoing")
            changes.append("default policies")

        existing = fw.allowed_rules() if was_active else set()
        rules = self.firewall_rules(config)
        for rule in rules:
            if rule in existing:
                continue
            if fw.allow(rule, self.settings.RULE_COMMENTS.get(rule, "")):
                changes.append(rule)

        if not was_active:
            fw.enable()
            changes.append("enabled")

        ports = ", ".join(rule.split("/")[0] for rule in rules)
        print_success(f"UFW configured (port{'s' if len(rules) > 1 else ''} {ports} open)")

        if not changes:
            return StepResult.unchanged("firewall", f"allowing {ports}")
        return StepResult.changed("firewall", ", ".join(changes))
