"""Post-deployment verification against live Docker state."""

import logging
from typing import List, Sequence

from docker_from_scratch.host import Host
from docker_from_scratch.models import CheckStatus, RunConfig, VerificationCheck
from docker_from_scratch.settings import LOGGER_NAME, Settings
from docker_from_scratch.ui import print_error, print_info, print_section, print_success

logger = logging.getLogger(LOGGER_NAME)


def _check(name: str, ok: bool, passed: str, failed: str) -> VerificationCheck:
    if ok:
        return VerificationCheck(name, CheckStatus.PASSED, passed)
    return VerificationCheck(name, CheckStatus.FAILED, failed)


def verify_installation(
    config: RunConfig, host: Host, settings: Settings
) -> List[VerificationCheck]:
    """
    Check every component without stopping at the first failure.

    Containers and the network are matched by exact name.
    """
    print_section("Verification")
    running = host.engine.container_names()
    checks = [
        _check(
            "docker_service",
            host.services.is_active("docker"),
            "Docker service is running",
            "Docker service is not running",
        ),
        _check(
            "portainer",
            settings.PORTAINER_NAME in running,
            "Portainer container is running",
            "Portainer container is not running",
        ),
    ]

    if config.install_npm:
        checks.append(
            _check(
                "npm",
                settings.NPM_NAME in running,
                "NPM container is running",
                "NPM container is not running",
            )
        )
    else:
        checks.append(
            VerificationCheck("npm", CheckStatus.SKIPPED, "NPM not installed (skipped by user)")
        )

    checks.append(
        _check(
            "network",
            config.network_name in host.engine.network_names(),
            f"Docker network '{config.network_name}' exists",
            f"Docker network '{config.network_name}' not found",
        )
    )

    for check in checks:
        if check.status is CheckStatus.PASSED:
            print_success(check.message)
        elif check.status is CheckStatus.SKIPPED:
            print_info(check.message)
        else:
            print_error(check.message)
            logger.error(f"Verification failed: {check.message}")

    if all_passed(checks):
        print_success("All components installed and running!")
    else:
        print_error("Some components failed. Check the logs above.")
    return checks


def all_passed(checks: Sequence[VerificationCheck]) -> bool:
    return all(check.ok for check in checks)
