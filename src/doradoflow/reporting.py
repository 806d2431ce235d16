"""Progress messages printed to standard output while the workflow runs."""

import datetime
from pathlib import Path

from rich.console import Console
from rich.filesize import decimal
from rich.table import Table
from rich.text import Text

console = Console(highlight=False)


def _print(message: str) -> None:
    # Paths may contain square brackets, so never interpret markup
    console.print(message, markup=False, emoji=False, soft_wrap=True)


def step_started(step: int, message: str) -> None:
    _print(f"🚀 Step {step}: {message}")


def step_detail(message: str) -> None:
    _print(f"   {message}")


def step_completed(message: str) -> None:
    _print(f"✅ {message}")


def warning(message: str) -> None:
    _print(f"⚠️ {message}")


def failure(message: str) -> None:
    _print(f"❌ {message}")


def print_directory_listing(directory: Path) -> None:
    table = Table(title=Text(str(directory)), title_justify="left")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    table.add_column("Name")

    for path in sorted(directory.iterdir()):
        stat = path.stat()
        modified = datetime.datetime.fromtimestamp(stat.st_mtime).strftime("%Y-%m-%d %H:%M")
        name = f"{path.name}/" if path.is_dir() else path.name
        table.add_row(decimal(stat.st_size), modified, Text(name))

    console.print(table)
