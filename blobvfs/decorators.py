"""Decorators for blobvfs CLI commands."""

import functools
import logging
from typing import Callable, Any

import typer
from rich.console import Console
from rich.markup import escape

from .errors import (
    InvalidPathError,
    NotFoundError,
    StoreIOError,
    VFSError,
)

logger = logging.getLogger(__name__)
console = Console()


def handle_vfs_errors(func: Callable) -> Callable:
    """
    Decorator to turn virtual filesystem failures into CLI errors.

    Centralizes error handling for:
    - NotFoundError: No record at the requested path
    - InvalidPathError: Path without a namespace or file part
    - StoreIOError: The blob store rejected the operation
    - Other VFSError / OSError: Reported and exit with code 1
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except NotFoundError as e:
            console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
            raise typer.Exit(code=1)
        except InvalidPathError as e:
            console.print(f"[bold red]Error:[/bold red] Invalid path: {escape(str(e))}")
            console.print("[yellow]Tip: paths look like blobvfs://<namespace>/<file>[/yellow]")
            raise typer.Exit(code=1)
        except StoreIOError as e:
            console.print(f"[bold red]Error:[/bold red] Storage failure: {escape(str(e))}")
            raise typer.Exit(code=1)
        except VFSError as e:
            console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
            raise typer.Exit(code=1)
        except OSError as e:
            console.print(f"[bold red]Error:[/bold red] {escape(str(e))}")
            raise typer.Exit(code=1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            raise typer.Exit(code=130)

    return wrapper
