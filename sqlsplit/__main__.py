from sqlsplit.cli import get_sqlsplit_group


def run_cli() -> None:  # pragma: no cover
    """sqlsplit CLI."""
    get_sqlsplit_group()(prog_name="sqlsplit")


if __name__ == "__main__":  # pragma: no cover
    run_cli()
