from collections.abc import Iterator
from typing import IO, TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from click import Group

    from sqlsplit.splitter import SplitStatement

__all__ = ("get_sqlsplit_group",)

DEFAULT_CHUNK_SIZE = 64 * 1024
OUTPUT_FORMATS = ("text", "json", "positions")


def _read_chunks(stream: IO[str], chunk_size: int) -> Iterator[str]:
    while True:
        chunk = stream.read(chunk_size)
        if not chunk:
            return
        yield chunk


def get_sqlsplit_group() -> "Group":  # noqa: C901
    """Get the sqlsplit CLI group.

    Raises:
        MissingDependencyError: If the `click` package is not installed.

    Returns:
        The sqlsplit CLI group.
    """
    from sqlsplit.exceptions import MissingDependencyError

    try:
        import rich_click as click
    except ImportError:
        try:
            import click  # type: ignore[no-redef]
        except ImportError as e:
            raise MissingDependencyError(package="click", install_package="cli") from e

    @click.group(name="sqlsplit")
    @click.option(
        "--log-level",
        help="Logging level for sqlsplit diagnostics.",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
        default="WARNING",
        show_default=True,
        envvar="SQLSPLIT_LOG_LEVEL",
    )
    @click.option(
        "--log-format",
        help="Log record format.",
        type=click.Choice(["simple", "structured"]),
        default="simple",
        show_default=True,
    )
    def sqlsplit_group(log_level: str, log_format: str) -> None:
        """Split SQL scripts into individual statements."""
        from sqlsplit.utils.logging import configure_logging

        configure_logging(level=log_level, format_style=log_format)

    @sqlsplit_group.command(name="split", help="Split a SQL script into statements.")
    @click.argument("script", type=click.File("r", encoding="utf-8"), default="-")
    @click.option("--dialect", "-d", help="Dialect profile or sqlglot dialect name.", type=str, default=None)
    @click.option("--no-split", help="Emit the whole script as one statement.", is_flag=True, default=False)
    @click.option(
        "--format",
        "output_format",
        help="Output format.",
        type=click.Choice(OUTPUT_FORMATS),
        default="text",
        show_default=True,
    )
    @click.option(
        "--terminator",
        help="Text appended to every statement in text output.",
        type=str,
        default=";",
        show_default=True,
    )
    @click.option("--stream", "use_stream", help="Read the script incrementally.", is_flag=True, default=False)
    @click.option("--chunk-size", help="Characters read per chunk with --stream.", type=int, default=DEFAULT_CHUNK_SIZE)
    def split_command(  # pyright: ignore[reportUnusedFunction]
        script: IO[str],
        dialect: Optional[str],
        no_split: bool,
        output_format: str,
        terminator: str,
        use_stream: bool,
        chunk_size: int,
    ) -> None:
        """Split SCRIPT (stdin by default) and print the statements."""
        from rich.console import Console

        from sqlsplit._serialization import encode_json
        from sqlsplit.exceptions import ImproperConfigurationError
        from sqlsplit.options import get_splitter_options
        from sqlsplit.splitter import StatementSplitter

        ctx = click.get_current_context()
        error_console = Console(stderr=True)
        try:
            options = get_splitter_options(dialect)
        except ImproperConfigurationError as e:
            error_console.print(f"[red]{e}[/]", markup=True, highlight=False)
            ctx.exit(1)
            return

        if no_split:
            options = options.merge({"no_split": True})
        splitter = StatementSplitter(options, use_cache=False)

        statements: list[SplitStatement]
        if use_stream:
            stream = splitter.stream()
            statements = []
            for chunk in _read_chunks(script, max(chunk_size, 1)):
                statements.extend(stream.feed(chunk))
            statements.extend(stream.close())
        else:
            statements = splitter.split_with_positions(script.read())

        if output_format == "json":
            click.echo(encode_json([statement.text for statement in statements]))
        elif output_format == "positions":
            click.echo(
                encode_json([
                    {
                        "text": statement.text,
                        "start": statement.start,
                        "end": statement.end,
                        "line": statement.line,
                        "column": statement.column,
                    }
                    for statement in statements
                ])
            )
        else:
            click.echo("\n\n".join(f"{statement.text}{terminator}" for statement in statements))

    @sqlsplit_group.command(name="dialects", help="List the built-in dialect profiles.")
    def list_dialects() -> None:  # pyright: ignore[reportUnusedFunction]
        """Print the names accepted by --dialect without a sqlglot lookup."""
        from sqlsplit.options import list_dialect_profiles

        for name in list_dialect_profiles():
            click.echo(name)

    return sqlsplit_group
