"""Quick-start guides and the closing summary shown after a successful install."""

from rich import box
from rich.table import Table

from docker_from_scratch.models import RunConfig
from docker_from_scratch.settings import Settings
from docker_from_scratch.ui import NordColors, console, display_panel, print_section

LETS_ENCRYPT = "Let's Encrypt"
PORTAINER_PORTS = 'ports: - "9443:9443"'


def _c(text: str) -> str:
    return f"[{NordColors.FROST_2}]{text}[/]"


def _y(text: str) -> str:
    return f"[{NordColors.YELLOW}]{text}[/]"


def print_npm_quickstart(config: RunConfig, settings: Settings, ip: str) -> None:
    npm_dir = config.service_dir(settings.NPM_NAME)
    print_section("Nginx Proxy Manager - Quick Start Guide")
    display_panel(
        "\n".join(
            [
                "[bold]1. ACCESS NPM ADMIN[/bold]",
                f"   Open in browser: {_c(f'http://{ip}:81')}",
                f"   Default credentials: {_y('admin@example.com')} / {_y('changeme')}",
                "   You'll be prompted to change these on first login.",
                "",
                "[bold]2. CREATE SSL CERTIFICATES[/bold]",
                f"   {_c('SSL Certificates')} → {_c('Add SSL Certificate')} → {_c(LETS_ENCRYPT)}",
                "   Enter your domain names and a notification email, then Save.",
                f"   {_y('Note:')} the domain must point to this server's public IP.",
                "   For wildcard certificates, use a DNS challenge.",
                "",
                "[bold]3. CREATE PROXY HOSTS[/bold]",
                f"   NPM itself:  forward {_y('npm')} port {_y('81')} (scheme http)",
                f"   Portainer:   forward {_y('portainer')} port {_y('9443')} (scheme https)",
                "   Enable Block Common Exploits and Websockets Support;",
                "   on the SSL tab select the certificate, Force SSL and HTTP/2.",
                "",
                "[bold]4. LOCK DOWN ACCESS (after the proxy works)[/bold]",
                f"   Edit {_c(str(npm_dir / settings.COMPOSE_FILENAME))} and remove port 81,",
                f"   then run: {_c(f'cd {npm_dir} && docker compose up -d')}",
            ]
        ),
        title="Nginx Proxy Manager",
    )


def common_tasks_table() -> Table:
    table = Table(box=box.SQUARE, header_style=f"bold {NordColors.FROST_1}")
    table.add_column("Action", style=NordColors.SNOW_STORM_1)
    table.add_column("Location", style=NordColors.FROST_2)
    table.add_row("View containers", "Home → local → Containers")
    table.add_row("View images", "Home → local → Images")
    table.add_row("Deploy new stack", "Home → local → Stacks → Add stack")
    table.add_row("Container logs", "Containers → (select) → Logs")
    table.add_row("Container shell", "Containers → (select) → Console")
    return table


def print_portainer_quickstart(config: RunConfig, settings: Settings, ip: str) -> None:
    portainer_dir = config.service_dir(settings.PORTAINER_NAME)
    print_section("Portainer CE - Quick Start Guide")

    access = [
        "[bold]1. INITIAL ACCESS[/bold]",
        f"   {_y('Important:')} Portainer has no exposed ports by default.",
        "   Temporarily expose port 9443 to set up the admin account:",
        f"   a) Edit {_c(str(portainer_dir / settings.COMPOSE_FILENAME))}",
        f"   b) Add under the portainer service: {_c(PORTAINER_PORTS)}",
        f"   c) Run: {_c(f'cd {portainer_dir} && docker compose up -d')}",
        f"   d) Access: {_c(f'https://{ip}:9443')} (accept the self-signed certificate)",
    ]
    if config.install_npm:
        access.append(f"   {_y('Or')} set up the NPM proxy first and access it over HTTPS.")
    else:
        access.append(f"   {_y('Tip:')} To install NPM later, run this tool again.")

    display_panel(
        "\n".join(
            access
            + [
                "",
                "[bold]2. CREATE ADMIN USER[/bold]",
                "   Set a username and strong password, then click \"Create user\".",
                "",
                "[bold]3. CONNECT LOCAL ENVIRONMENT[/bold]",
                "   Click \"Get Started\", then \"local\" to manage this Docker instance.",
                "",
                "[bold]4. COMMON TASKS[/bold]",
            ]
        ),
        title="Portainer CE",
    )
    console.print(common_tasks_table())
    if config.install_npm:
        console.print(
            "[bold]5. REMOVE DIRECT ACCESS (after the NPM proxy works)[/bold]\n"
            "   Remove the ports section from docker-compose.yml and redeploy."
        )


def print_final_summary(config: RunConfig, settings: Settings, ip: str) -> None:
    print_section("Installation Complete!")

    components = ["Docker CE with Compose plugin", "Portainer CE (container management)"]
    if config.install_npm:
        components.append("Nginx Proxy Manager (reverse proxy + SSL)")

    lines = [
        "[bold]SERVER DETAILS[/bold]",
        f"  Hostname:    {config.hostname}",
        f"  IP Address:  {ip}",
        f"  Timezone:    {config.timezone}",
        "",
        "[bold]INSTALLED COMPONENTS[/bold]",
    ]
    lines += [f"  • {component}" for component in components]
    lines += [
        "",
        "[bold]DIRECTORIES[/bold]",
        f"  Compose files:   {config.compose_dir}",
        f"  Persistent data: {config.data_dir}",
        "",
    ]

    if config.install_npm:
        lines += [
            "[bold]QUICK ACCESS[/bold]",
            f"  NPM Admin:   http://{ip}:81",
            "",
            "[bold]NEXT STEPS[/bold]",
            "  1. Log into NPM and change the default credentials",
            "  2. Set up SSL certificates for your domains",
            "  3. Create proxy hosts for NPM and Portainer",
            "  4. Access Portainer through the NPM proxy",
            "  5. Lock down direct port access",
        ]
    else:
        lines += [
            "[bold]NEXT STEPS[/bold]",
            "  1. Expose Portainer port 9443 in docker-compose.yml",
            f"  2. Access Portainer at https://{ip}:9443",
            "  3. Create an admin user and configure Docker management",
            "",
            "[bold]TO INSTALL NPM LATER[/bold]",
            "  Run this tool again and choose to install NPM.",
        ]

    lines += [
        "",
        "[bold]USEFUL COMMANDS[/bold]",
        "  docker ps                              # List running containers",
        "  docker compose -f <file> logs -f       # View container logs",
        "  docker compose -f <file> pull && docker compose -f <file> up -d",
    ]
    if config.install_npm:
        lines += ["", "[bold]TO UNINSTALL NPM[/bold]", "  docker-from-scratch --uninstall-npm"]

    display_panel("\n".join(lines), style=NordColors.GREEN, title="Summary")
    console.print(
        f"{_y('Note:')} Log out and back in (or run 'newgrp docker') "
        "to use Docker without sudo."
    )
