import logging
import sys
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table
from rich.traceback import install
from sqlalchemy.engine import make_url

from .config import (
    VFSConfig,
    default_database_url,
    get_config_path,
    load_config,
    save_config,
    validate_enabled_path,
)
from .decorators import handle_vfs_errors
from .store.sql import SQLBlobStore
from .upload import UploadInterceptor
from .vfs.filesystem import VirtualFilesystem
from .vfs.router import PathRouter
from .vfs.stream import OpenMode

# Initialize Rich Traceback for better error messages
install(show_locals=True)

# Initialize Rich Console
console = Console()

# Configure logging to use Rich's RichHandler
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)

app = typer.Typer(help="Virtual files stored in a database blob store")


class CLIState:
    """Options shared by every command."""

    def __init__(self, database_url: Optional[str], config_path: Optional[Path]):
        self.config_path = config_path
        self.config = load_config(config_path)
        self.database_url = database_url or self.config.storage.database_url or default_database_url()


def _state(ctx: typer.Context) -> CLIState:
    return ctx.obj


def _ensure_sqlite_dir(database_url: str) -> None:
    url = make_url(database_url)
    if url.get_backend_name() == "sqlite" and url.database and url.database != ":memory:":
        Path(url.database).expanduser().parent.mkdir(parents=True, exist_ok=True)


@contextmanager
def _filesystem(ctx: typer.Context) -> Iterator[VirtualFilesystem]:
    state = _state(ctx)
    _ensure_sqlite_dir(state.database_url)
    store = SQLBlobStore.open(state.database_url)
    try:
        yield VirtualFilesystem(store, state.config)
    finally:
        store.close()


def _format_size(size: int) -> str:
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024 or unit == "GB":
            return f"{size} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size} B"


@app.callback()
def main(
    ctx: typer.Context,
    database_url: Optional[str] = typer.Option(None, "--db", help="Database URL (defaults from config)"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="Config file to use"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode"),
):
    """
    blobvfs - virtual files stored as records in a database.

    Paths look like blobvfs://<namespace>/<path/to/file>; the scheme is
    optional on the command line.
    """
    if verbose:
        logging.getLogger("blobvfs").setLevel(logging.DEBUG)
        console.print("[bold green]Verbose mode enabled.[/bold green]")
    ctx.obj = CLIState(database_url, config_path)


@app.command()
@handle_vfs_errors
def init(ctx: typer.Context):
    """Create the database and a default config file."""
    state = _state(ctx)
    config_path = Path(state.config_path) if state.config_path else get_config_path()
    if not config_path.exists():
        save_config(state.config, config_path)
        console.print(f"[green]Configuration initialized at {config_path}[/green]")

    with _filesystem(ctx):
        pass
    console.print(f"[green]Database ready: {state.database_url}[/green]")


@app.command()
@handle_vfs_errors
def put(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Virtual path to write"),
    source: Path = typer.Argument(..., help="Local file to store ('-' for stdin)"),
    append: bool = typer.Option(False, "--append", "-a", help="Append instead of replacing"),
):
    """Store a local file at a virtual path."""
    if str(source) == "-":
        data = sys.stdin.buffer.read()
    else:
        data = source.read_bytes()

    mode = OpenMode.APPEND if append else OpenMode.WRITE
    with _filesystem(ctx) as fs:
        with fs.open(path, mode) as f:
            f.write(data)
            size = f.size
    console.print(f"[green]Stored {path} ({_format_size(size)})[/green]")


@app.command()
@handle_vfs_errors
def cat(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Virtual path to print"),
):
    """Print a virtual file's content."""
    with _filesystem(ctx) as fs:
        data = fs.read_bytes(path)
    typer.echo(data, nl=False)


@app.command(name="ls")
@handle_vfs_errors
def ls(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Virtual directory, e.g. blobvfs://scorm/course1"),
):
    """List files under a virtual directory."""
    with _filesystem(ctx) as fs:
        with fs.opendir(path) as handle:
            entries = handle.entries

    if not entries:
        console.print("[yellow]No files found[/yellow]")
        return

    table = Table(title=f"{path}")
    table.add_column("Path", style="cyan")
    table.add_column("Size", style="green", justify="right")
    table.add_column("Type", style="magenta")
    table.add_column("Updated", style="blue")
    for record in entries:
        table.add_row(
            record.virtual_path,
            _format_size(record.size),
            record.mime_type or "",
            record.updated_at.strftime("%Y-%m-%d %H:%M:%S"),
        )
    console.print(table)


@app.command()
@handle_vfs_errors
def stat(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Virtual path"),
):
    """Show size, times and type of a virtual file."""
    with _filesystem(ctx) as fs:
        info = fs.stat(path)

    table = Table(title=f"{path}")
    table.add_column("Field", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("ino", str(info.ino))
    table.add_row("size", str(info.size))
    table.add_row("mode", oct(info.mode))
    table.add_row("mime_type", info.mime_type or "")
    table.add_row("mtime", str(info.mtime))
    table.add_row("ctime", str(info.ctime))
    console.print(table)


@app.command()
@handle_vfs_errors
def rm(
    ctx: typer.Context,
    path: str = typer.Argument(..., help="Virtual path to delete"),
):
    """Delete a virtual file."""
    with _filesystem(ctx) as fs:
        deleted = fs.unlink(path)
    if not deleted:
        console.print(f"[yellow]Nothing stored at {path}[/yellow]")
        raise typer.Exit(code=1)
    console.print(f"[green]Deleted {path}[/green]")


@app.command()
@handle_vfs_errors
def usage(
    ctx: typer.Context,
    namespace: str = typer.Argument(..., help="Namespace to measure"),
):
    """Show total stored bytes for a namespace."""
    with _filesystem(ctx) as fs:
        total = fs.usage(namespace)
    console.print(f"{namespace}: {total} bytes ({_format_size(total)})")


@app.command(name="import-dir")
@handle_vfs_errors
def import_dir(
    ctx: typer.Context,
    namespace: str = typer.Argument(..., help="Namespace (optionally with sub-path) to import into"),
    directory: Path = typer.Argument(..., help="Local directory to import"),
):
    """Store every file below a local directory."""
    if not directory.is_dir():
        console.print(f"[red]Error: Not a directory: {directory}[/red]")
        raise typer.Exit(code=1)

    state = _state(ctx)
    with _filesystem(ctx) as fs:
        interceptor = UploadInterceptor(
            fs.store, fs.router,
            base_url=state.config.server.base_url,
            url_prefix=state.config.server.url_prefix,
        )
        if interceptor.is_package(directory):
            url = interceptor.intercept_package(namespace, directory)
            console.print(f"[green]Imported package, served from {url}[/green]")
        else:
            records = interceptor.import_directory(namespace, directory)
            console.print(f"[green]Imported {len(records)} files into {namespace}[/green]")


@app.command()
def route(
    ctx: typer.Context,
    physical_path: str = typer.Argument(..., help="Physical path to check"),
):
    """Show how a physical path is routed by the enabled prefixes."""
    state = _state(ctx)
    fs_router = PathRouter(state.config.enabled_paths, scheme=state.config.scheme)
    prefix = fs_router.match(physical_path)
    if prefix is None and not physical_path.startswith(fs_router.scheme_prefix):
        console.print(f"[yellow]Not routed: {physical_path}[/yellow]")
        raise typer.Exit(code=1)

    console.print(f"Prefix:  {prefix or '[dim]scheme[/dim]'}")
    console.print(f"Virtual: {fs_router.rewrite(physical_path)}")


@app.command()
@handle_vfs_errors
def serve(
    ctx: typer.Context,
    host: Optional[str] = typer.Option(None, "--host", help="Host to bind to (defaults from config)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port to bind to (defaults from config)"),
):
    """
    Start the HTTP server for stored files.

    Files are served at /<url_prefix>/<namespace>/<path>; a JSON API lives
    under /api.
    """
    state = _state(ctx)
    server_host = host if host is not None else state.config.server.host
    server_port = port if port is not None else state.config.server.port

    try:
        import uvicorn
    except ImportError:
        console.print("[red]Error: uvicorn is not installed[/red]")
        console.print("[yellow]Install with: pip install uvicorn[/yellow]")
        raise typer.Exit(code=1)

    from .server import create_app

    _ensure_sqlite_dir(state.database_url)
    store = SQLBlobStore.open(state.database_url)
    try:
        console.print("[blue]Starting blobvfs server...[/blue]")
        console.print(f"[blue]Database: {state.database_url}[/blue]")
        console.print(f"[green]Server running at http://{server_host}:{server_port}[/green]")
        console.print("[dim]Press Ctrl+C to stop[/dim]")
        uvicorn.run(create_app(store, state.config), host=server_host, port=server_port, log_level="info")
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")
    finally:
        store.close()


@app.command()
def config(
    ctx: typer.Context,
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
    add_path: Optional[List[str]] = typer.Option(None, "--add-path", help="Enable a namespace prefix"),
    remove_path: Optional[List[str]] = typer.Option(None, "--remove-path", help="Disable a namespace prefix"),
    set_cache: Optional[bool] = typer.Option(None, "--cache/--no-cache", help="Enable the read cache"),
    set_cache_ttl: Optional[int] = typer.Option(None, "--cache-ttl", help="Read cache TTL in seconds"),
    set_database_url: Optional[str] = typer.Option(None, "--database-url", help="Default database URL"),
    set_server_host: Optional[str] = typer.Option(None, "--server-host", help="Set web server host"),
    set_server_port: Optional[int] = typer.Option(None, "--server-port", help="Set web server port"),
    set_base_url: Optional[str] = typer.Option(None, "--base-url", help="Site URL used in virtual URLs"),
):
    """
    View or edit blobvfs configuration.

    Examples:
        # Route uploads under "grassblade" and "scorm" into the store
        blobvfs config --add-path grassblade --add-path scorm

        # Turn on the read cache with a short TTL
        blobvfs config --cache --cache-ttl 60
    """
    state = _state(ctx)
    config_path = Path(state.config_path) if state.config_path else get_config_path()
    cfg = state.config

    has_settings = any([
        add_path, remove_path, set_cache is not None, set_cache_ttl is not None,
        set_database_url, set_server_host, set_server_port, set_base_url is not None,
    ])

    if show or not has_settings:
        _print_config(cfg, config_path)
        return

    changes = []
    for path in add_path or []:
        path = path.strip().strip("/")
        if not validate_enabled_path(path):
            console.print(f"[red]Error: Invalid path {path!r} (letters, digits, '-', '_' and '/' only)[/red]")
            raise typer.Exit(code=1)
        if path not in cfg.enabled_paths:
            cfg.enabled_paths.append(path)
            changes.append(f"enabled path added: {path}")
    for path in remove_path or []:
        path = path.strip().strip("/")
        if path in cfg.enabled_paths:
            cfg.enabled_paths.remove(path)
            changes.append(f"enabled path removed: {path}")
    if set_cache is not None:
        cfg.cache.enabled = set_cache
        changes.append(f"cache enabled: {set_cache}")
    if set_cache_ttl is not None:
        cfg.cache.ttl = set_cache_ttl
        changes.append(f"cache ttl: {abs(set_cache_ttl)}")
    if set_database_url is not None:
        cfg.storage.database_url = set_database_url
        changes.append(f"database url: {set_database_url}")
    if set_server_host is not None:
        cfg.server.host = set_server_host
        changes.append(f"server host: {set_server_host}")
    if set_server_port is not None:
        cfg.server.port = set_server_port
        changes.append(f"server port: {set_server_port}")
    if set_base_url is not None:
        cfg.server.base_url = set_base_url
        changes.append(f"base url: {set_base_url}")

    save_config(cfg, config_path)
    console.print("[green]Configuration updated:[/green]")
    for change in changes:
        console.print(f"  • {change}")


def _print_config(cfg: VFSConfig, config_path: Path) -> None:
    console.print("\n[bold]blobvfs Configuration[/bold]")
    console.print(f"[dim]Location: {config_path}[/dim]\n")

    console.print("[bold cyan]Routing:[/bold cyan]")
    console.print(f"  Scheme:         {cfg.scheme}://")
    if cfg.enabled_paths:
        console.print(f"  Enabled Paths:  {', '.join(cfg.enabled_paths)}")
    else:
        console.print("  Enabled Paths:  [dim]none[/dim]")
    console.print(f"  Listable:       {', '.join(cfg.directory_namespaces)}")

    console.print("\n[bold cyan]Cache:[/bold cyan]")
    console.print(f"  Enabled:        {cfg.cache.enabled}")
    console.print(f"  TTL:            {cfg.cache.ttl}s")
    console.print(f"  Max Entries:    {cfg.cache.max_entries}")

    console.print("\n[bold cyan]Storage:[/bold cyan]")
    console.print(f"  Database:       {cfg.storage.database_url or default_database_url()}")

    console.print("\n[bold cyan]Server:[/bold cyan]")
    console.print(f"  Host:           {cfg.server.host}")
    console.print(f"  Port:           {cfg.server.port}")
    console.print(f"  URL Prefix:     /{cfg.server.url_prefix}")
    console.print(f"  Base URL:       {cfg.server.base_url or '[dim]not set[/dim]'}\n")


if __name__ == "__main__":
    app()
