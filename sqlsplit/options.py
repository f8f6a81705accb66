"""Splitter configuration and per-dialect option profiles.

:class:`SplitterOptions` is an immutable description of the lexical rules the
splitter applies: which characters open quoted literals and how they escape,
which statement terminators and directives are recognized, and which comment
styles are skipped. Profiles for common engines are provided as module level
constants and can be looked up by dialect name with :func:`get_splitter_options`.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field, fields, replace
from types import MappingProxyType
from typing import Any, Optional, Union

from sqlglot.dialects.dialect import Dialect, DialectType

from sqlsplit.exceptions import ImproperConfigurationError
from sqlsplit.utils.logging import get_logger

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
    "OptionsLike",
    "SplitterOptions",
    "get_splitter_options",
    "list_dialect_profiles",
    "resolve_options",
)

logger = get_logger("sqlsplit.options")


def _default_strings_ends() -> dict[str, str]:
    return {"'": "'", '"': '"'}


def _default_string_escapes() -> dict[str, str]:
    return {"'": "'", '"': '"'}


@dataclass(frozen=True)
class SplitterOptions:
    """Lexical rules used when splitting a script.

    Attributes:
        strings_begins: Characters that open a quoted literal or identifier.
        strings_ends: Closing character for each opener.
        string_escapes: Escape character for each opener. When it equals the
            closer, a doubled closer is a literal closer; when it differs, a
            closer preceded by it does not end the literal; when missing the
            first closer always ends the literal.
        allow_semicolon: ``;`` is the initial statement delimiter.
        allow_custom_delimiter: ``DELIMITER <token>`` lines change the delimiter.
        allow_go_delimiter: A ``GO`` line ends the current batch.
        allow_dollar_dollar_string: ``$tag$ ... $tag$`` literals are recognized.
        double_dash_comments: ``-- ...`` comments are recognized.
        multiline_comments: ``/* ... */`` comments are recognized.
        no_split: Return the whole input as a single statement.
    """

    strings_begins: tuple[str, ...] = ("'", '"')
    strings_ends: Mapping[str, str] = field(default_factory=_default_strings_ends)
    string_escapes: Mapping[str, str] = field(default_factory=_default_string_escapes)
    allow_semicolon: bool = True
    allow_custom_delimiter: bool = False
    allow_go_delimiter: bool = False
    allow_dollar_dollar_string: bool = False
    double_dash_comments: bool = True
    multiline_comments: bool = True
    no_split: bool = False

    def __post_init__(self) -> None:
        # read-only copies of the caller's mappings
        object.__setattr__(self, "strings_begins", tuple(self.strings_begins))
        object.__setattr__(self, "strings_ends", MappingProxyType(dict(self.strings_ends)))
        object.__setattr__(self, "string_escapes", MappingProxyType(dict(self.string_escapes)))

    def merge(self, overrides: Mapping[str, Any]) -> "SplitterOptions":
        """Return a copy with ``overrides`` applied over these options.

        Args:
            overrides: Partial mapping of field names to values.

        Raises:
            ImproperConfigurationError: If a key is not a splitter option.

        Returns:
            The merged options.
        """
        known = {f.name for f in fields(self)}
        unknown = sorted(set(overrides) - known)
        if unknown:
            msg = f"Unknown splitter option(s): {', '.join(unknown)}"
            raise ImproperConfigurationError(msg)
        if not overrides:
            return self
        return replace(self, **overrides)

    def cache_key(self) -> tuple[Any, ...]:
        """Hashable representation of these options."""
        return (
            self.strings_begins,
            tuple(sorted(self.strings_ends.items())),
            tuple(sorted(self.string_escapes.items())),
            self.allow_semicolon,
            self.allow_custom_delimiter,
            self.allow_go_delimiter,
            self.allow_dollar_dollar_string,
            self.double_dash_comments,
            self.multiline_comments,
            self.no_split,
        )


OptionsLike = Union[SplitterOptions, Mapping[str, Any], None]

DEFAULT_SPLITTER_OPTIONS = SplitterOptions()

# MySQL/MariaDB client scripts: '' and "" literals with backslash escapes (default sql_mode,
# NO_BACKSLASH_ESCAPES off), `identifiers` with doubled backticks, DELIMITER lines.
MYSQL_SPLITTER_OPTIONS = DEFAULT_SPLITTER_OPTIONS.merge({
    "allow_custom_delimiter": True,
    "strings_begins": ("'", '"', "`"),
    "strings_ends": {"'": "'", '"': '"', "`": "`"},
    "string_escapes": {"'": "\\", '"': "\\", "`": "`"},
})

# T-SQL: '' literals and "" / [] identifiers, each escaped by doubling the closer; GO ends a batch.
MSSQL_SPLITTER_OPTIONS = DEFAULT_SPLITTER_OPTIONS.merge({
    "allow_semicolon": False,
    "allow_go_delimiter": True,
    "strings_begins": ("'", "[", '"'),
    "strings_ends": {"'": "'", "[": "]", '"': '"'},
    "string_escapes": {"'": "'", "[": "]", '"': '"'},
})

POSTGRES_SPLITTER_OPTIONS = DEFAULT_SPLITTER_OPTIONS.merge({"allow_dollar_dollar_string": True})

# SQLite: '', "", `` quoting with doubled closers; [identifiers] have no escape.
SQLITE_SPLITTER_OPTIONS = DEFAULT_SPLITTER_OPTIONS.merge({
    "strings_begins": ("'", '"', "`", "["),
    "strings_ends": {"'": "'", '"': '"', "`": "`", "[": "]"},
    "string_escapes": {"'": "'", '"': '"', "`": "`"},
})

ORACLE_SPLITTER_OPTIONS = DEFAULT_SPLITTER_OPTIONS

# GoogleSQL: '' and "" literals with backslash escapes; `identifiers` have no escape.
BIGQUERY_SPLITTER_OPTIONS = DEFAULT_SPLITTER_OPTIONS.merge({
    "strings_begins": ("'", '"', "`"),
    "strings_ends": {"'": "'", '"': '"', "`": "`"},
    "string_escapes": {"'": "\\", '"': "\\"},
})

DUCKDB_SPLITTER_OPTIONS = POSTGRES_SPLITTER_OPTIONS

NO_SPLIT_SPLITTER_OPTIONS = DEFAULT_SPLITTER_OPTIONS.merge({"no_split": True})

# Keys double as lower-cased sqlglot dialect class names, see _profile_for_dialect.
_DIALECT_PROFILES: dict[str, SplitterOptions] = {
    "generic": DEFAULT_SPLITTER_OPTIONS,
    "mysql": MYSQL_SPLITTER_OPTIONS,
    "mariadb": MYSQL_SPLITTER_OPTIONS,
    "tsql": MSSQL_SPLITTER_OPTIONS,
    "mssql": MSSQL_SPLITTER_OPTIONS,
    "sqlserver": MSSQL_SPLITTER_OPTIONS,
    "postgres": POSTGRES_SPLITTER_OPTIONS,
    "postgresql": POSTGRES_SPLITTER_OPTIONS,
    "sqlite": SQLITE_SPLITTER_OPTIONS,
    "oracle": ORACLE_SPLITTER_OPTIONS,
    "bigquery": BIGQUERY_SPLITTER_OPTIONS,
    "duckdb": DUCKDB_SPLITTER_OPTIONS,
    "nosplit": NO_SPLIT_SPLITTER_OPTIONS,
}


def list_dialect_profiles() -> list[str]:
    """Names accepted by :func:`get_splitter_options` without consulting sqlglot."""
    return sorted(_DIALECT_PROFILES)


def _profile_for_dialect(dialect: Dialect) -> Optional[SplitterOptions]:
    for klass in type(dialect).__mro__:
        profile = _DIALECT_PROFILES.get(klass.__name__.lower())
        if profile is not None:
            return profile
    return None


def get_splitter_options(dialect: DialectType = None) -> SplitterOptions:
    """Return the option profile for ``dialect``.

    Plain names are matched against the built-in profiles first. Anything else
    is resolved through sqlglot, so derived dialects (``redshift``, ``doris``)
    pick up the profile of the engine they extend.

    Args:
        dialect: Dialect name, sqlglot dialect class or instance, or ``None``.

    Raises:
        ImproperConfigurationError: If sqlglot does not know the dialect.

    Returns:
        The matching options, or the defaults for dialects without a profile.
    """
    if dialect is None:
        return DEFAULT_SPLITTER_OPTIONS

    if isinstance(dialect, str):
        profile = _DIALECT_PROFILES.get(dialect.strip().lower())
        if profile is not None:
            return profile

    try:
        resolved = Dialect.get_or_raise(dialect)
    except ValueError as e:
        msg = f"Unknown SQL dialect: {dialect!r}"
        raise ImproperConfigurationError(msg) from e

    profile = _profile_for_dialect(resolved)
    if profile is None:
        logger.debug("No splitter profile for dialect %s, using defaults", type(resolved).__name__)
        return DEFAULT_SPLITTER_OPTIONS
    return profile


def resolve_options(options: OptionsLike = None) -> SplitterOptions:
    """Merge ``options`` over the documented defaults.

    Args:
        options: Complete options, a partial mapping of overrides, or ``None``.

    Returns:
        Complete splitter options.
    """
    if options is None:
        return DEFAULT_SPLITTER_OPTIONS
    if isinstance(options, SplitterOptions):
        return options
    return DEFAULT_SPLITTER_OPTIONS.merge(options)
