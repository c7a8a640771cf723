"""
Compose definitions for Portainer and Nginx Proxy Manager.

Each service gets its own directory under the compose root. The file is
rendered from the run configuration and overwritten on every run, so manual
edits to it do not survive a re-run.
"""

import logging
import time
from pathlib import Path
from typing import Callable

import yaml

from docker_from_scratch.host import Host
from docker_from_scratch.models import ComposeService, RunConfig, StepResult
from docker_from_scratch.settings import LOGGER_NAME, Settings
from docker_from_scratch.ui import print_section, print_step, print_success, run_with_progress

logger = logging.getLogger(LOGGER_NAME)

DOCKER_SOCKET_VOLUME = "/var/run/docker.sock:/var/run/docker.sock"


def portainer_service(config: RunConfig, settings: Settings) -> ComposeService:
    return ComposeService(
        name=settings.PORTAINER_NAME,
        image=settings.PORTAINER_IMAGE,
        network=config.network_name,
        command="-H unix:///var/run/docker.sock",
        volumes=[
            DOCKER_SOCKET_VOLUME,
            f"{config.data_dir / 'portainer'}:/data",
        ],
    )


def npm_service(config: RunConfig, settings: Settings) -> ComposeService:
    return ComposeService(
        name=settings.NPM_NAME,
        image=settings.NPM_IMAGE,
        network=config.network_name,
        ports=["80:80", "443:443", "81:81"],
        volumes=[
            f"{config.data_dir / 'npm' / 'data'}:/data",
            f"{config.data_dir / 'npm' / 'letsencrypt'}:/etc/letsencrypt",
        ],
        environment=[f"TZ={config.timezone}"],
    )


def render_compose(service: ComposeService) -> str:
    """Render a service as docker-compose YAML, keys in the conventional order."""
    return yaml.safe_dump(service.to_compose(), sort_keys=False, default_flow_style=False)


def write_compose_file(service: ComposeService, project_dir: Path, filename: str) -> Path:
    project_dir.mkdir(parents=True, exist_ok=True)
    compose_file = project_dir / filename
    compose_file.write_text(render_compose(service))
    logger.info(f"Wrote {compose_file}")
    return compose_file


class ServiceDeployer:
    def __init__(
        self,
        host: Host,
        settings: Settings,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.host = host
        self.settings = settings
        self.sleep = sleep

    def deploy(self, service: ComposeService, config: RunConfig, title: str) -> StepResult:
        """Write the compose file, pull the image and start the service detached."""
        print_section(f"{title} Installation")
        project_dir = config.service_dir(service.name)

        print_step(f"Creating {project_dir / self.settings.COMPOSE_FILENAME}...")
        write_compose_file(service, project_dir, self.settings.COMPOSE_FILENAME)

        run_with_progress(f"Pulling {service.image}", self.host.engine.compose_pull, project_dir)
        run_with_progress(f"Starting {title}", self.host.engine.compose_up, project_dir)
        return StepResult.changed(service.name, f"deployed from {project_dir}")

    def deploy_portainer(self, config: RunConfig) -> StepResult:
        result = self.deploy(portainer_service(config, self.settings), config, "Portainer CE")
        print_success("Portainer deployed successfully")
        return result

    def deploy_npm(self, config: RunConfig) -> StepResult:
        if not config.install_npm:
            return StepResult.skipped(self.settings.NPM_NAME, "not requested")

        result = self.deploy(npm_service(config, self.settings), config, "Nginx Proxy Manager")
        # No health endpoint is polled; give the proxy a moment before verification
        print_step("Waiting for NPM to start...")
        self.sleep(self.settings.NPM_STARTUP_DELAY)
        print_success("Nginx Proxy Manager deployed successfully")
        return result
