"""Nord-themed console output and interactive prompts."""

import shutil
import time
from typing import Any, Callable, List, Optional, Sequence

import pyfiglet
from rich import box
from rich.align import Align
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich.text import Text
from rich.theme import Theme

from docker_from_scratch import APP_NAME, APP_TAGLINE, VERSION
from docker_from_scratch.models import StepResult, VerificationCheck


# ----------------------------------------------------------------
# Nord-Themed Colors and Theme Setup
# ----------------------------------------------------------------
class NordColors:
    """Nord color palette definitions for consistent UI styling."""

    POLAR_NIGHT_1: str = "#2E3440"
    POLAR_NIGHT_3: str = "#434C5E"
    POLAR_NIGHT_4: str = "#4C566A"
    SNOW_STORM_1: str = "#D8DEE9"
    SNOW_STORM_2: str = "#E5E9F0"
    FROST_1: str = "#8FBCBB"
    FROST_2: str = "#88C0D0"
    FROST_3: str = "#81A1C1"
    FROST_4: str = "#5E81AC"
    RED: str = "#BF616A"
    ORANGE: str = "#D08770"
    YELLOW: str = "#EBCB8B"
    GREEN: str = "#A3BE8C"
    PURPLE: str = "#B48EAD"

    @classmethod
    def get_frost_gradient(cls, steps: int = 4) -> List[str]:
        """Returns a gradient using the frost color palette."""
        frosts = [cls.FROST_1, cls.FROST_2, cls.FROST_3, cls.FROST_4]
        return frosts[:steps]


nord_theme = Theme(
    {
        "banner": f"bold {NordColors.FROST_2}",
        "header": f"bold {NordColors.FROST_2}",
        "info": NordColors.GREEN,
        "warning": NordColors.YELLOW,
        "error": NordColors.RED,
        "debug": NordColors.POLAR_NIGHT_3,
        "success": NordColors.GREEN,
    }
)

console = Console(theme=nord_theme)


# ----------------------------------------------------------------
# UI Helper Functions
# ----------------------------------------------------------------
def create_header(title: str = APP_NAME) -> Panel:
    """
    Generate an ASCII art header with a frost gradient using Pyfiglet.
    The banner is built line-by-line into a Rich Text object to avoid stray markup tokens.
    """
    term_width, _ = shutil.get_terminal_size((80, 24))
    fonts: List[str] = ["slant", "small", "mini", "digital"]
    if term_width < 60:
        fonts = fonts[1:]

    ascii_art = ""
    for font in fonts:
        try:
            fig = pyfiglet.Figlet(font=font, width=min(term_width - 10, 120))
            ascii_art = fig.renderText(title)
            if ascii_art.strip():
                break
        except pyfiglet.FontNotFound:
            continue

    ascii_lines = [line for line in ascii_art.splitlines() if line.strip()]
    colors = NordColors.get_frost_gradient()
    combined_text = Text()

    for i, line in enumerate(ascii_lines):
        color = colors[i % len(colors)]
        combined_text.append(Text(line, style=f"bold {color}"))
        if i < len(ascii_lines) - 1:
            combined_text.append("\n")

    return Panel(
        Align.center(combined_text),
        border_style=NordColors.FROST_1,
        padding=(1, 2),
        title=Text(f"{APP_NAME} v{VERSION}", style=f"bold {NordColors.SNOW_STORM_2}"),
        title_align="right",
        subtitle=Text(APP_TAGLINE, style=f"bold {NordColors.SNOW_STORM_1}"),
        subtitle_align="center",
        box=box.ROUNDED,
    )


def print_banner() -> None:
    console.print(create_header())
    console.print(
        f"[{NordColors.FROST_2}]https://github.com/GonzFC/DockerFromScratch[/]"
    )
    console.print()


def print_message(
    text: str, style: str = NordColors.FROST_2, prefix: str = "•"
) -> None:
    """Print a styled message with a prefix."""
    console.print(f"[{style}]{prefix} {text}[/{style}]")


def print_success(message: str) -> None:
    """Print a success message."""
    print_message(message, NordColors.GREEN, "✓")


def print_warning(message: str) -> None:
    """Print a warning message."""
    print_message(message, NordColors.YELLOW, "⚠")


def print_error(message: str) -> None:
    """Print an error message."""
    print_message(message, NordColors.RED, "✗")


def print_step(message: str) -> None:
    """Print a step message in a workflow."""
    print_message(message, NordColors.FROST_2, "▶")


def print_info(message: str) -> None:
    print_message(message, NordColors.FROST_4, "ℹ")


def print_section(title: str) -> None:
    """Print a boxed section header."""
    console.print()
    console.print(
        Panel(
            Text(title, style=f"bold {NordColors.SNOW_STORM_2}"),
            border_style=NordColors.FROST_4,
            box=box.DOUBLE,
            expand=True,
        )
    )


def display_panel(
    message: str, style: str = NordColors.FROST_2, title: Optional[str] = None
) -> None:
    """Display a styled panel with a message."""
    panel = Panel(
        Text.from_markup(message),
        border_style=f"{style}",
        padding=(1, 2),
        title=f"[bold {style}]{title}[/{style}]" if title else None,
        box=box.ROUNDED,
    )
    console.print(panel)


def print_key_values(rows: Sequence[Sequence[str]], title: Optional[str] = None) -> None:
    """Print two-column rows as a borderless table."""
    table = Table(show_header=False, box=None, padding=(0, 2), title=title)
    table.add_column("Key", style=f"bold {NordColors.FROST_2}")
    table.add_column("Value", style=NordColors.SNOW_STORM_1)
    for key, value in rows:
        table.add_row(f"{key}:", value)
    console.print(table)


STATUS_STYLES = {
    "unchanged": "debug",
    "changed": "success",
    "passed": "success",
    "skipped": "warning",
    "failed": "error",
}


def print_status_report(
    results: Sequence[StepResult], checks: Sequence[VerificationCheck] = ()
) -> None:
    """Print a status report table for every step and verification check."""
    table = Table(title="Setup Status Report", style="banner", box=box.ROUNDED)
    table.add_column("Task", style="header")
    table.add_column("Status", style="info")
    table.add_column("Message", style="info")

    for item in list(results) + list(checks):
        status = item.outcome if isinstance(item, StepResult) else item.status
        color = STATUS_STYLES.get(status.value, "info")
        table.add_row(
            item.name.replace("_", " ").title(),
            f"[{color}]{status.value.upper()}[/{color}]",
            item.message,
        )

    console.print(
        Panel(
            table,
            title=f"[banner]{APP_NAME} Status[/banner]",
            border_style=NordColors.FROST_3,
            box=box.ROUNDED,
        )
    )


# ----------------------------------------------------------------
# Progress Utility
# ----------------------------------------------------------------
def run_with_progress(
    description: str, func: Callable[..., Any], *args: Any, **kwargs: Any
) -> Any:
    """Run a function behind a spinner and report its duration."""
    with console.status(f"[bold {NordColors.FROST_2}]{description}...[/]"):
        start = time.time()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            elapsed = time.time() - start
            console.print(f"[error]✗ {description} failed in {elapsed:.2f}s: {e}[/error]")
            raise
    elapsed = time.time() - start
    console.print(f"[success]✓ {description} completed in {elapsed:.2f}s[/success]")
    return result


# ----------------------------------------------------------------
# Prompts
# ----------------------------------------------------------------
class Prompter:
    """Interactive questions asked of the operator."""

    def __init__(self, prompt_console: Console = console):
        self.console = prompt_console

    def confirm(self, question: str, default: bool = True) -> bool:
        return Confirm.ask(
            f"[bold {NordColors.FROST_2}]{question}[/]",
            default=default,
            console=self.console,
        )

    def ask(self, question: str, default: str = "") -> str:
        """Ask for free text; blank input keeps the default."""
        answer = Prompt.ask(
            f"[bold {NordColors.FROST_2}]{question}[/]",
            default=default or None,
            console=self.console,
        )
        return (answer or default).strip()

    def ask_literal(self, question: str, expected: str) -> bool:
        """Return True only if the operator types exactly ``expected``."""
        answer = Prompt.ask(
            f"[bold {NordColors.RED}]{question}[/]",
            default="",
            show_default=False,
            console=self.console,
        )
        return answer == expected

    def choose(self, question: str, count: int) -> Optional[int]:
        """Ask for a 1-based number; return the 0-based index or None if invalid."""
        answer = Prompt.ask(
            f"[bold {NordColors.FROST_2}]{question} (1-{count})[/]",
            default="",
            show_default=False,
            console=self.console,
        ).strip()
        if answer.isdigit() and 1 <= int(answer) <= count:
            return int(answer) - 1
        return None
