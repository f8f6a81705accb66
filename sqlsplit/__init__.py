"""sqlsplit: dialect-aware splitting of SQL scripts into statements."""

from sqlsplit import exceptions, options, splitter, utils
from sqlsplit.__metadata__ import __version__
from sqlsplit.exceptions import ImproperConfigurationError, SQLSplitError, StreamClosedError
from sqlsplit.options import (
    BIGQUERY_SPLITTER_OPTIONS,
    DEFAULT_SPLITTER_OPTIONS,
    DUCKDB_SPLITTER_OPTIONS,
    MSSQL_SPLITTER_OPTIONS,
    MYSQL_SPLITTER_OPTIONS,
    NO_SPLIT_SPLITTER_OPTIONS,
    ORACLE_SPLITTER_OPTIONS,
    POSTGRES_SPLITTER_OPTIONS,
    SQLITE_SPLITTER_OPTIONS,
    SplitterOptions,
    get_splitter_options,
)
from sqlsplit.splitter import (
    SplitStatement,
    StatementSplitter,
    StatementStream,
    split_query,
    split_query_stream,
    split_query_with_positions,
    split_sql_script,
)

__all__ = (
    "BIGQUERY_SPLITTER_OPTIONS",
    "DEFAULT_SPLITTER_OPTIONS",
    "DUCKDB_SPLITTER_OPTIONS",
    "MSSQL_SPLITTER_OPTIONS",
    "MYSQL_SPLITTER_OPTIONS",
    "NO_SPLIT_SPLITTER_OPTIONS",
    "ORACLE_SPLITTER_OPTIONS",
    "POSTGRES_SPLITTER_OPTIONS",
    "SQLITE_SPLITTER_OPTIONS",
    "ImproperConfigurationError",
    "SQLSplitError",
    "SplitStatement",
    "SplitterOptions",
    "StatementSplitter",
    "StatementStream",
    "StreamClosedError",
    "__version__",
    "exceptions",
    "get_splitter_options",
    "options",
    "split_query",
    "split_query_stream",
    "split_query_with_positions",
    "split_sql_script",
    "splitter",
    "utils",
)
