"""Shared utility functions for bootstitch.

Provides async command execution, duration formatting and Rich-based
console reporting used by the pipeline and its collaborators.
"""

from __future__ import annotations

import asyncio
import os
from enum import Enum
from pathlib import Path

from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from bootstitch.errors import ExternalToolFailure

console = Console()

# Captured tool output shown on failure is cut to this many trailing characters.
MAX_TOOL_OUTPUT_CHARS = 4000


# ---------------------------------------------------------------------------
# Pipeline stages
# ---------------------------------------------------------------------------


class Stage(str, Enum):
    """Pipeline stages, in execution order, plus the two terminal states."""

    PROMPTING = "prompting"
    FETCH_BACKEND = "fetch-backend"
    SCAFFOLD_FRONTEND = "scaffold-frontend"
    BUILD_FRONTEND = "build-frontend"
    MERGE_DESCRIPTOR = "merge-descriptor"
    BUILD_BACKEND = "build-backend"
    DONE = "done"
    FAILED = "failed"

    @property
    def label(self) -> str:
        return self.value.replace("-", " ")


STAGE_ORDER: tuple[Stage, ...] = (
    Stage.PROMPTING,
    Stage.FETCH_BACKEND,
    Stage.SCAFFOLD_FRONTEND,
    Stage.BUILD_FRONTEND,
    Stage.MERGE_DESCRIPTOR,
    Stage.BUILD_BACKEND,
)

STAGE_COLORS: dict[Stage, str] = {
    Stage.PROMPTING: "bright_cyan",
    Stage.FETCH_BACKEND: "bright_green",
    Stage.SCAFFOLD_FRONTEND: "bright_yellow",
    Stage.BUILD_FRONTEND: "bright_magenta",
    Stage.MERGE_DESCRIPTOR: "bright_blue",
    Stage.BUILD_BACKEND: "bright_red",
}

# ---------------------------------------------------------------------------
# Async command execution
# ---------------------------------------------------------------------------


async def run_command(
    cmd: list[str],
    cwd: str | Path | None = None,
    timeout: int = 120,
    env: dict[str, str] | None = None,
) -> tuple[int, str, str]:
    """Run an external command asynchronously and capture its output.

    Args:
        cmd: Program and arguments. No shell is involved.
        cwd: Working directory for the child process.
        timeout: Maximum wall-clock seconds before the process is killed.
        env: Optional extra environment variables merged on top of ``os.environ``.

    Returns:
        A ``(returncode, stdout, stderr)`` tuple.  A timed-out process yields
        return code ``-1`` and a message in *stderr*; a missing executable
        yields return code ``127``.
    """
    merged_env: dict[str, str] | None = None
    if env:
        merged_env = {**os.environ, **env}

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
        )
    except FileNotFoundError:
        return (127, "", f"Command not found: {cmd[0]}")

    try:
        stdout_bytes, stderr_bytes = await asyncio.wait_for(
            process.communicate(), timeout=timeout
        )
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return (-1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}")

    stdout_str = (stdout_bytes or b"").decode("utf-8", errors="replace").strip()
    stderr_str = (stderr_bytes or b"").decode("utf-8", errors="replace").strip()
    return (process.returncode or 0, stdout_str, stderr_str)


def combine_output(stdout: str, stderr: str) -> str:
    """Join captured stdout and stderr into a single block of text."""
    return "\n".join(part for part in (stdout, stderr) if part)


async def run_tool(
    cmd: list[str],
    *,
    stage: str,
    description: str,
    cwd: str | Path | None = None,
    timeout: int = 120,
) -> str:
    """Run an external tool behind a spinner and fail loudly on non-zero exit.

    Args:
        cmd: Program and arguments.
        stage: Pipeline stage name, attached to any raised error.
        description: Spinner text shown while the tool runs.
        cwd: Working directory for the tool.
        timeout: Maximum wall-clock seconds.

    Returns:
        The combined stdout/stderr of a successful run.

    Raises:
        ExternalToolFailure: If the tool exits non-zero, times out, or is
            not installed.
    """
    with create_progress() as progress:
        progress.add_task(description, total=None)
        returncode, stdout, stderr = await run_command(cmd, cwd=cwd, timeout=timeout)

    output = combine_output(stdout, stderr)
    if returncode != 0:
        raise ExternalToolFailure(
            stage,
            f"`{' '.join(cmd)}` exited with status {returncode}",
            output,
        )
    return output


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def format_duration(seconds: float) -> str:
    """Format a duration in seconds to a human-readable string.

    Examples::

        format_duration(3.7)    -> "3.7s"
        format_duration(65.2)   -> "1m 5s"
        format_duration(3661.0) -> "1h 1m 1s"
    """
    if seconds < 0:
        return "0.0s"

    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    secs = seconds % 60

    parts: list[str] = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")

    if hours > 0 or minutes > 0:
        parts.append(f"{int(secs)}s")
    else:
        parts.append(f"{secs:.1f}s")

    return " ".join(parts)


def tail(text: str, limit: int = MAX_TOOL_OUTPUT_CHARS) -> str:
    """Return the last *limit* characters of *text*, marking truncation."""
    if len(text) <= limit:
        return text
    return "...\n" + text[-limit:]


# ---------------------------------------------------------------------------
# Rich output helpers
# ---------------------------------------------------------------------------


def print_stage_header(number: int, name: str, color: str = "white") -> None:
    """Print a full-width rule announcing a pipeline stage."""
    console.print()
    console.print(
        Rule(
            f"[bold {color}] Stage {number}: {name.upper()} [/bold {color}]",
            style=color,
        )
    )
    console.print()


def print_summary_table(data: dict[str, str], title: str = "Summary") -> None:
    """Print a two-column key/value summary table."""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Item", style="dim", no_wrap=True)
    table.add_column("Value")

    for key, value in data.items():
        table.add_row(key, str(value))

    console.print(table)
    console.print()


def print_tool_output(output: str, title: str = "Tool output") -> None:
    """Show captured external tool output in a bordered panel."""
    if not output.strip():
        return
    console.print(Panel(Text(tail(output)), title=title, border_style="red"))


def print_success(message: str) -> None:
    """Print a green success message."""
    console.print(f"[bold green]{message}[/bold green]")


def print_error(message: str) -> None:
    """Print a red error message."""
    console.print(f"[bold red]{message}[/bold red]")


def print_warning(message: str) -> None:
    """Print a yellow warning message."""
    console.print(f"[bold yellow]{message}[/bold yellow]")


def create_progress() -> Progress:
    """Create a Rich spinner for long-running external commands.

    Returns:
        A ``Progress`` instance suitable for use as a context manager.
    """
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    )
