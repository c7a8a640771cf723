"""Command-line entry point."""

import argparse
import getpass
import logging
import signal
import sys
from pathlib import Path
from typing import Any, List, Optional

from rich.traceback import install as install_rich_traceback

from docker_from_scratch import APP_NAME, APP_TAGLINE, VERSION
from docker_from_scratch.errors import PreflightError
from docker_from_scratch.host import Host
from docker_from_scratch.log import setup_logger
from docker_from_scratch.models import Operator
from docker_from_scratch.pipeline import SetupPipeline
from docker_from_scratch.preflight import PreflightChecker
from docker_from_scratch.settings import LOGGER_NAME, Settings
from docker_from_scratch.ui import Prompter, console, print_banner, print_error, print_warning
from docker_from_scratch.uninstall import NpmUninstaller

logger = logging.getLogger(LOGGER_NAME)

EXAMPLES = """\
examples:
  docker-from-scratch                  Run the interactive install
  docker-from-scratch --uninstall-npm  Remove Nginx Proxy Manager
"""


# ----------------------------------------------------------------
# Signal Handling
# ----------------------------------------------------------------
def signal_handler(signum: int, frame: Optional[Any]) -> None:
    sig_name = signal.Signals(signum).name
    logger.error(f"Interrupted by {sig_name}. Changes already made are left in place.")
    print_warning(f"Interrupted by {sig_name}.")
    sys.exit(130 if signum == signal.SIGINT else 128 + signum)


def install_signal_handlers() -> None:
    for s in (signal.SIGINT, signal.SIGTERM, signal.SIGHUP):
        signal.signal(s, signal_handler)


# ----------------------------------------------------------------
# Main
# ----------------------------------------------------------------
def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="docker-from-scratch",
        description=f"{APP_NAME}: {APP_TAGLINE}",
        epilog=EXAMPLES,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--uninstall-npm",
        action="store_true",
        help="Remove Nginx Proxy Manager (container, compose files, optionally data and image)",
    )
    parser.add_argument(
        "--version", action="version", version=f"%(prog)s {VERSION}"
    )
    return parser


def current_operator() -> Operator:
    return Operator(name=getpass.getuser(), home=Path.home())


def run(
    args: argparse.Namespace,
    host: Host,
    prompter: Prompter,
    settings: Settings,
    operator: Operator,
) -> int:
    """Dispatch to the selected mode and translate errors into exit codes."""
    try:
        if args.uninstall_npm:
            PreflightChecker(host, prompter, settings).check_privileges()
            return NpmUninstaller(host, prompter, settings, operator).run()
        return SetupPipeline(host, prompter, settings, operator).run()
    except PreflightError as e:
        print_error(str(e))
        logger.error(f"Preflight failed: {e}")
        return 1


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    setup_logger()
    install_rich_traceback(console=console, show_locals=True)
    install_signal_handlers()

    print_banner()
    logger.info(f"{APP_NAME} v{VERSION} started (uninstall_npm={args.uninstall_npm})")
    return run(args, Host.local(), Prompter(), Settings(), current_operator())


if __name__ == "__main__":
    sys.exit(main())
