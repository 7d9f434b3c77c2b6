"""Utility functions for Project-Upgrader."""

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Protocol

from pathvalidate import ValidationError, validate_filename
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TaskID, TextColumn
from rich.prompt import Confirm, Prompt

logger = logging.getLogger(__name__)


def ensure_dir(path: Path) -> Path:
    """
    Create directory if it doesn't exist.

    Args:
        path: Directory path to create

    Returns:
        The created/existing directory path
    """
    path.mkdir(parents=True, exist_ok=True)
    return path


def expand_path(path: str) -> Path:
    """
    Expand ~ and environment variables in path.

    Args:
        path: Path string to expand

    Returns:
        Expanded Path object
    """
    return Path(os.path.expanduser(os.path.expandvars(path))).resolve()


def is_valid_directory_name(name: str) -> bool:
    """
    Check that a name can be used as a single directory component.

    Source names become directory names under the migrations and seeds roots,
    so separators, reserved names and empty strings are rejected.

    Args:
        name: Candidate directory name

    Returns:
        True if name is a valid, non-traversing directory name
    """
    if not name or name in (".", ".."):
        return False
    try:
        validate_filename(name)
    except ValidationError:
        return False
    return True


def prompt_confirm(message: str, default: bool = False) -> bool:
    """
    Prompt user for confirmation.

    Args:
        message: Confirmation message
        default: Default value if user just presses Enter

    Returns:
        True if confirmed, False otherwise
    """
    return Confirm.ask(message, default=default)


def prompt_select(message: str, options: list[str]) -> str:
    """
    Prompt user to pick one of several options.

    Args:
        message: Question to display
        options: Allowed answers

    Returns:
        The chosen option
    """
    return Prompt.ask(message, choices=options, default=options[0] if options else None)


class Prompter(Protocol):
    """Interactive questions asked during an upgrade."""

    def confirm(self, question: str) -> bool: ...

    def select_one(self, question: str, options: list[str]) -> str | None: ...


class ConsolePrompter:
    """Prompter backed by rich prompts on the terminal."""

    def confirm(self, question: str) -> bool:
        return prompt_confirm(question, default=False)

    def select_one(self, question: str, options: list[str]) -> str | None:
        return prompt_select(question, options)


class ProgressReporter(Protocol):
    """Receives step-boundary progress notifications."""

    def step(self, description: str) -> None: ...


class NullReporter:
    """Progress reporter that discards notifications."""

    def step(self, description: str) -> None:
        logger.debug("progress: %s", description)


class SpinnerReporter:
    """Progress reporter that drives a rich spinner.

    The spinner only starts on the first step so prompts shown before the
    first step are not drawn over.
    """

    def __init__(self, console: Console, transient: bool = True):
        self.console = console
        self.transient = transient
        self.progress: Progress | None = None
        self.task_id: TaskID | None = None

    def step(self, description: str) -> None:
        if self.progress is None or self.task_id is None:
            self.progress = Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=self.console,
                transient=self.transient,
            )
            self.progress.start()
            self.task_id = self.progress.add_task(description, total=None)
        else:
            self.progress.update(self.task_id, description=description)

    def stop(self) -> None:
        if self.progress is not None:
            self.progress.stop()
            self.progress = None
            self.task_id = None


@contextmanager
def progress_spinner(console: Console) -> Iterator[SpinnerReporter]:
    """
    Create a progress spinner context manager.

    Args:
        console: Rich console for output

    Yields:
        Reporter that starts the spinner on its first step
    """
    reporter = SpinnerReporter(console)
    try:
        yield reporter
    finally:
        reporter.stop()
