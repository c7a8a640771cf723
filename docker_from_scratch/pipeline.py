"""
The install flow: preflight, configuration, reconciliation steps, verification.

Each step returns a StepResult. A raised exception becomes a FAILED result;
whether a failure stops the remaining steps is decided per step.
"""

import logging
import subprocess
import time
from dataclasses import dataclass
from typing import Callable, List, Tuple

from docker_from_scratch.commands import error_text
from docker_from_scratch.compose import ServiceDeployer
from docker_from_scratch.configuration import ConfigurationResolver
from docker_from_scratch.docker_engine import DockerInstaller
from docker_from_scratch.drives import DriveSetup
from docker_from_scratch.errors import SetupError
from docker_from_scratch.guides import (
    print_final_summary,
    print_npm_quickstart,
    print_portainer_quickstart,
)
from docker_from_scratch.host import Host
from docker_from_scratch.models import (
    Operator,
    Outcome,
    RunConfig,
    StepResult,
    VerificationCheck,
)
from docker_from_scratch.preflight import PreflightChecker
from docker_from_scratch.reconcile import SystemReconciler
from docker_from_scratch.settings import LOGGER_NAME, Settings
from docker_from_scratch.ui import (
    Prompter,
    print_error,
    print_section,
    print_status_report,
    print_success,
    print_warning,
)
from docker_from_scratch.verify import all_passed, verify_installation

logger = logging.getLogger(LOGGER_NAME)


@dataclass(frozen=True)
class Step:
    name: str
    action: Callable[[RunConfig], StepResult]
    halt_on_failure: bool = False


def run_step(step: Step, config: RunConfig) -> StepResult:
    try:
        result = step.action(config)
    except subprocess.CalledProcessError as e:
        result = StepResult.failed(step.name, error_text(e))
    except (subprocess.TimeoutExpired, OSError, SetupError) as e:
        result = StepResult.failed(step.name, str(e))

    if result.outcome is Outcome.FAILED:
        print_error(f"{step.name.replace('_', ' ').title()} failed: {result.message}")
        logger.error(f"Step {step.name} failed: {result.message}")
    else:
        logger.info(f"Step {step.name}: {result.outcome.value} {result.message}".rstrip())
    return result


def run_steps(steps: List[Step], config: RunConfig) -> Tuple[List[StepResult], bool]:
    """Run steps in order. Returns the results and whether the run was halted."""
    results: List[StepResult] = []
    for index, step in enumerate(steps):
        result = run_step(step, config)
        results.append(result)
        if not result.ok and step.halt_on_failure:
            remaining = steps[index + 1 :]
            print_warning(
                f"Stopping: {len(remaining)} remaining step(s) depend on {step.name}."
            )
            results += [
                StepResult.skipped(s.name, f"not run, {step.name} failed") for s in remaining
            ]
            return results, True
    return results, False


class SetupPipeline:
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
        self.results: List[StepResult] = []
        self.checks: List[VerificationCheck] = []

    def build_steps(self, installer: DockerInstaller) -> List[Step]:
        system = SystemReconciler(self.host, self.settings, self.operator)
        deployer = ServiceDeployer(self.host, self.settings, sleep=self.sleep)
        return [
            Step("hostname", system.hostname),
            Step("timezone", system.timezone),
            Step("system_update", system.update_system),
            Step("packages", system.packages),
            Step("data_directories", system.data_directories),
            Step("firewall", system.firewall),
            Step("docker_engine", installer.install, halt_on_failure=True),
            Step("compat_patch", installer.apply_compat_patch),
            Step("network", installer.ensure_network, halt_on_failure=True),
            Step("portainer", deployer.deploy_portainer),
            Step("npm", deployer.deploy_npm),
        ]

    def run(self) -> int:
        """Run the full install flow and return the process exit code.

        PreflightError is left to the caller.
        """
        start = time.time()
        logger.info("Starting install flow")

        print_section("Pre-flight Checks")
        release = PreflightChecker(self.host, self.prompter, self.settings).run()

        drive_setup = DriveSetup(
            self.host, self.prompter, self.settings, self.operator, sleep=self.sleep
        )
        config = ConfigurationResolver(
            self.host, self.prompter, self.settings, self.operator, drive_setup
        ).resolve()
        if config is None:
            return 0

        installer = DockerInstaller(
            self.host, self.prompter, self.settings, self.operator, release=release
        )
        results, halted = run_steps(self.build_steps(installer), config)
        checks = verify_installation(config, self.host, self.settings)
        self.results, self.checks = results, checks
        print_status_report(results, checks)

        elapsed = time.time() - start
        success = all(r.ok for r in results) and all_passed(checks)
        logger.info(f"Install flow finished in {elapsed:.0f}s, success={success}")

        if halted:
            print_error("Setup stopped early. Fix the error above and run the tool again.")
            return 1

        ip = self.host.primary_ip()
        if config.install_npm:
            print_npm_quickstart(config, self.settings, ip)
        print_portainer_quickstart(config, self.settings, ip)
        print_final_summary(config, self.settings, ip)

        if success:
            print_success(f"Setup completed in {elapsed:.0f}s")
            return 0
        print_error("Setup finished with failures. Re-run the tool after fixing them.")
        return 1
