"""SQL script statement splitter.

This module splits a SQL script into the individual statements a client can
execute one at a time. It performs a single forward scan over the text,
classifying the text at the cursor into a token and emitting a statement each
time a terminating token is recognized:

- quoted literals and identifiers, with doubled-closer or escape-character rules
- the active statement delimiter (``;`` unless disabled)
- ``--`` line comments and ``/* */`` block comments
- ``DELIMITER <token>`` directives (MySQL client style)
- ``GO`` batch separators on a line of their own (T-SQL)
- ``$tag$ ... $tag$`` dollar-quoted strings (PostgreSQL)

The scan never fails: unterminated literals and comments run to the end of the
input, and trailing text without a delimiter is still returned as the last
statement. Which rules apply is controlled by :class:`~sqlsplit.options.SplitterOptions`.
"""

import re
import threading
from collections.abc import Generator, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Final, Optional

from mypy_extensions import mypyc_attr
from typing_extensions import TypeAlias

from sqlsplit.cache import SplitResultCache
from sqlsplit.exceptions import StreamClosedError
from sqlsplit.options import OptionsLike, SplitterOptions, get_splitter_options, resolve_options
from sqlsplit.utils.logging import get_logger

__all__ = (
    "ScanContext",
    "SplitStatement",
    "StatementSplitter",
    "StatementStream",
    "Token",
    "TokenType",
    "clear_splitter_caches",
    "get_initial_delimiter",
    "get_splitter_cache_stats",
    "scan_dollar_quoted_string",
    "scan_token",
    "split_query",
    "split_query_segment",
    "split_query_stream",
    "split_query_with_positions",
    "split_sql_script",
)

logger = get_logger("sqlsplit.splitter")

SEMICOLON: Final = ";"

_DELIMITER_DIRECTIVE_RE: Final = re.compile(r"DELIMITER[ \t]+([^\n]+)", re.IGNORECASE)
_GO_DIRECTIVE_RE: Final = re.compile(r"GO[\t\r ]*(?=\n|\Z)", re.IGNORECASE)
_DOLLAR_LABEL_RE: Final = re.compile(r"\$[a-zA-Z0-9_]*\$")
_DOLLAR_LABEL_PREFIX_RE: Final = re.compile(r"\$[a-zA-Z0-9_]*(\$)?")
_GO_PARTIAL_RE: Final = re.compile(r"G(?:O[\t\r ]*)?", re.IGNORECASE)
DELIMITER_KEYWORD: Final = "DELIMITER"


class TokenType(Enum):
    """Kinds of tokens the classifier can recognize at the cursor."""

    STRING = "STRING"
    DELIMITER = "DELIMITER"
    WHITESPACE = "WHITESPACE"
    EOLN = "EOLN"
    DATA = "DATA"
    SET_DELIMITER = "SET_DELIMITER"
    COMMENT = "COMMENT"
    GO_DELIMITER = "GO_DELIMITER"


@mypyc_attr(allow_interpreted_subclasses=True)
class Token:
    """A classified span starting at the scan cursor."""

    __slots__ = ("length", "type", "value")

    def __init__(self, type: TokenType, length: int, value: Optional[str] = None) -> None:
        self.type = type
        self.length = length
        self.value = value

    def __repr__(self) -> str:
        if self.value is None:
            return f"Token({self.type.value}, {self.length})"
        return f"Token({self.type.value}, {self.length}, {self.value!r})"


WHITESPACE_TOKEN: Final = Token(TokenType.WHITESPACE, 1)
EOLN_TOKEN: Final = Token(TokenType.EOLN, 1)
DATA_TOKEN: Final = Token(TokenType.DATA, 1)

_DATA_TOKEN_TYPES: Final = frozenset({TokenType.STRING, TokenType.COMMENT, TokenType.DATA})
# Classification of these never depends on text after the token.
_FIXED_TOKEN_TYPES: Final = frozenset({TokenType.DELIMITER, TokenType.WHITESPACE, TokenType.EOLN})


@dataclass(frozen=True)
class SplitStatement:
    """A statement found by the splitter.

    Attributes:
        text: The trimmed statement text.
        start: Offset of the first character of ``text`` in the input.
        end: Offset just past the last character of ``text``.
        line: 1-based line of ``start``.
        column: 1-based column of ``start``.
    """

    text: str
    start: int
    end: int
    line: int
    column: int


PushOutput: TypeAlias = Callable[[SplitStatement], None]


@dataclass
class ScanContext:
    """Mutable state of one scan.

    ``command_part + source[current_command_start:position]`` is always the text
    of the statement being accumulated; ``position`` never moves backwards.
    ``command_part`` only ever holds text taken from ``source`` starting at
    ``command_part_start``. The ``base_*`` fields locate ``source[0]`` in the
    original input once a stream has dropped already emitted text.

    A string or comment scan that ran into ``end`` leaves ``resume_*`` behind:
    the token at ``resume_position`` has no terminator before ``resume_offset``
    and cannot end until ``resume_stop`` is read (any character when empty).
    """

    source: str
    end: int
    options: SplitterOptions
    push_output: PushOutput
    current_delimiter: Optional[str] = None
    position: int = 0
    current_command_start: int = 0
    was_data_on_line: bool = False
    command_part: str = ""
    command_part_start: int = 0
    final: bool = True
    base_offset: int = 0
    base_line: int = 1
    base_column: int = 1
    line_mark_offset: int = 0
    line_mark_newlines: int = 0
    resume_position: int = -1
    resume_offset: int = 0
    resume_stop: str = ""


def get_initial_delimiter(options: SplitterOptions) -> Optional[str]:
    """Delimiter active at the start of a script."""
    return SEMICOLON if options.allow_semicolon else None


def _is_string_end(context: ScanContext, pos: int, end_char: str, escape_char: Optional[str]) -> bool:
    source = context.source
    if source[pos] != end_char:
        return False
    if not escape_char:
        return True
    if end_char == escape_char:
        return pos + 1 >= context.end or source[pos + 1] != end_char
    return source[pos - 1] != escape_char


def _resume_from(context: ScanContext, offset: int) -> int:
    if context.resume_position == context.position:
        return max(offset, context.resume_offset)
    return offset


def _remember_open_scan(context: ScanContext, offset: int, stop: str) -> None:
    context.resume_position = context.position
    context.resume_offset = offset
    context.resume_stop = stop


def _scan_quoted_string(context: ScanContext, opener: str) -> Token:
    source = context.source
    end = context.end
    end_char = context.options.strings_ends.get(opener, opener)
    escape_char = context.options.string_escapes.get(opener)
    doubled = end_char == escape_char

    pos = _resume_from(context, context.position + 1)
    while pos < end and not _is_string_end(context, pos, end_char, escape_char):
        if doubled and source[pos] == end_char and pos + 1 < end and source[pos + 1] == end_char:
            pos += 2
        else:
            pos += 1
    if pos + 1 >= end:
        # a closer in the last position may still turn out to be doubled
        _remember_open_scan(context, pos, end_char if pos >= end else "")
    return Token(TokenType.STRING, min(pos + 1, end) - context.position)


def scan_dollar_quoted_string(context: ScanContext) -> Optional[Token]:
    """Match a ``$label$ ... $label$`` literal at the cursor.

    Returns:
        The string token, or ``None`` when dollar quoting is disabled, no label
        starts at the cursor, or the closing label is missing.
    """
    if not context.options.allow_dollar_dollar_string:
        return None

    match = _DOLLAR_LABEL_RE.match(context.source, context.position, context.end)
    if not match:
        return None
    label = match.group(0)

    close = context.source.find(label, _resume_from(context, match.end()), context.end)
    if close == -1:
        _remember_open_scan(context, max(match.end(), context.end - len(label) + 1), "$")
        return None
    return Token(TokenType.STRING, close + len(label) - context.position)


def scan_token(context: ScanContext) -> Token:
    """Classify the token starting at the cursor without advancing it.

    Rules are tried in order and the first match wins: quoted string, active
    delimiter, whitespace, newline, ``--`` comment, ``/* */`` comment,
    ``DELIMITER`` directive, ``GO`` separator, dollar-quoted string and finally
    a single data character.
    """
    options = context.options
    source = context.source
    pos = context.position
    end = context.end
    ch = source[pos]

    if ch in options.strings_begins:
        return _scan_quoted_string(context, ch)

    delimiter = context.current_delimiter
    if delimiter and source.startswith(delimiter, pos, end):
        return Token(TokenType.DELIMITER, len(delimiter))

    if ch in " \t\r":
        return WHITESPACE_TOKEN

    if ch == "\n":
        return EOLN_TOKEN

    if options.double_dash_comments and source.startswith("--", pos, end):
        comment_end = source.find("\n", _resume_from(context, pos), end)
        if comment_end == -1:
            _remember_open_scan(context, end, "\n")
            return Token(TokenType.COMMENT, end - pos)
        return Token(TokenType.COMMENT, comment_end - pos)

    if options.multiline_comments and source.startswith("/*", pos, end):
        comment_end = source.find("*/", _resume_from(context, pos + 2), end)
        if comment_end == -1:
            resume = max(pos + 2, end - 1)
            _remember_open_scan(context, resume, "" if source.startswith("*", resume, end) else "*")
            return Token(TokenType.COMMENT, end - pos)
        return Token(TokenType.COMMENT, comment_end + 2 - pos)

    if options.allow_custom_delimiter and not context.was_data_on_line:
        match = _DELIMITER_DIRECTIVE_RE.match(source, pos, end)
        if match:
            return Token(TokenType.SET_DELIMITER, match.end() - pos, match.group(1).strip())

    if options.allow_go_delimiter and not context.was_data_on_line:
        match = _GO_DIRECTIVE_RE.match(source, pos, end)
        if match:
            return Token(TokenType.GO_DELIMITER, match.end() - pos)

    dollar_string = scan_dollar_quoted_string(context)
    if dollar_string is not None:
        return dollar_string

    return DATA_TOKEN


def _locate(context: ScanContext, offset: int) -> tuple[int, int]:
    source = context.source
    # statements are located in increasing order, so count from the last mark
    if offset >= context.line_mark_offset:
        newlines = context.line_mark_newlines + source.count("\n", context.line_mark_offset, offset)
    else:
        newlines = source.count("\n", 0, offset)
    context.line_mark_offset = offset
    context.line_mark_newlines = newlines

    if newlines:
        return context.base_line + newlines, offset - source.rfind("\n", 0, offset)
    return context.base_line, context.base_column + offset


def _push_statement(context: ScanContext) -> None:
    pending = context.source[context.current_command_start : context.position]
    if context.command_part:
        raw = context.command_part + pending
        raw_start = context.command_part_start
    else:
        raw = pending
        raw_start = context.current_command_start

    text = raw.strip()
    if not text:
        return

    start = raw_start + len(raw) - len(raw.lstrip())
    line, column = _locate(context, start)
    absolute_start = context.base_offset + start
    context.push_output(
        SplitStatement(text=text, start=absolute_start, end=absolute_start + len(text), line=line, column=column)
    )


def _end_statement(context: ScanContext, token: Token) -> None:
    _push_statement(context)
    context.command_part = ""
    context.position += token.length
    context.current_command_start = context.position


def _is_settled(context: ScanContext, token: Token) -> bool:
    """Whether more input could still change how ``token`` is classified."""
    if token.type in _FIXED_TOKEN_TYPES:
        return True

    source = context.source
    pos = context.position
    end = context.end

    if pos + token.length >= end:
        return False

    delimiter = context.current_delimiter
    if delimiter and end - pos < len(delimiter) and delimiter.startswith(source[pos:end]):
        return False

    options = context.options
    if not context.was_data_on_line and source.find("\n", pos, end) == -1:
        if options.allow_custom_delimiter:
            head = source[pos : pos + len(DELIMITER_KEYWORD)].upper()
            if DELIMITER_KEYWORD.startswith(head):
                return False
        if options.allow_go_delimiter and _GO_PARTIAL_RE.fullmatch(source, pos, end):
            return False

    if options.allow_dollar_dollar_string and token.type is TokenType.DATA and source[pos] == "$":
        label = _DOLLAR_LABEL_PREFIX_RE.match(source, pos, end)
        if label is not None and (label.end() == end or label.group(1)):
            return False

    return True


def _drive(context: ScanContext) -> None:
    while context.position < context.end:
        token = scan_token(context)
        if not context.final and not _is_settled(context, token):
            break

        token_type = token.type
        if token_type is TokenType.WHITESPACE:
            context.position += token.length
        elif token_type is TokenType.EOLN:
            context.position += token.length
            context.was_data_on_line = False
        elif token_type in _DATA_TOKEN_TYPES:
            context.position += token.length
            context.was_data_on_line = True
        elif token_type is TokenType.SET_DELIMITER:
            context.current_delimiter = token.value
            _end_statement(context, token)
        else:
            _end_statement(context, token)


def split_query_segment(context: ScanContext) -> None:
    """Scan ``context.source`` from the cursor up to ``context.end``.

    Completed statements go to ``context.push_output``. Text left without a
    terminator is moved into ``context.command_part`` so a later segment (or the
    final flush) continues the same statement.
    """
    _drive(context)

    if context.position > context.current_command_start:
        if not context.command_part:
            context.command_part_start = context.current_command_start
        context.command_part += context.source[context.current_command_start : context.position]
        context.current_command_start = context.position


def _finish(context: ScanContext) -> None:
    _push_statement(context)
    context.command_part = ""


def _split(sql: str, options: SplitterOptions) -> list[SplitStatement]:
    output: list[SplitStatement] = []
    context = ScanContext(
        source=sql,
        end=len(sql),
        options=options,
        push_output=output.append,
        current_delimiter=get_initial_delimiter(options),
    )

    split_query_segment(context)
    _finish(context)

    logger.debug("Split %d characters into %d statements", len(sql), len(output))
    return output


def split_query(sql: str, options: OptionsLike = None) -> list[str]:
    """Split a SQL script into individual statements.

    Args:
        sql: The script text. Any string is accepted, including an empty one.
        options: Splitter options, a partial mapping merged over the defaults,
            or ``None`` for the defaults.

    Returns:
        Trimmed, non-empty statements in source order. With ``no_split`` the
        input is returned unchanged as the only element.
    """
    used_options = resolve_options(options)
    if used_options.no_split:
        return [sql]
    return [statement.text for statement in _split(sql, used_options)]


def split_query_with_positions(sql: str, options: OptionsLike = None) -> list[SplitStatement]:
    """Split a SQL script and report where each statement starts and ends.

    ``sql[s.start:s.end] == s.text`` holds for every returned statement.
    """
    used_options = resolve_options(options)
    if used_options.no_split:
        return [SplitStatement(text=sql, start=0, end=len(sql), line=1, column=1)]
    return _split(sql, used_options)


@mypyc_attr(allow_interpreted_subclasses=False)
class StatementStream:
    """Incremental splitter for scripts that arrive in chunks.

    Statements are returned as soon as their terminator has been read and no
    later input could change where they end. For any chunking, the statements
    produced by :meth:`feed` and :meth:`close` are the same as those of
    :func:`split_query_with_positions` on the joined text.
    """

    __slots__ = ("_closed", "_context", "_output", "_pending")

    def __init__(self, options: OptionsLike = None) -> None:
        used_options = resolve_options(options)
        self._output: list[SplitStatement] = []
        self._pending: list[str] = []
        self._closed = False
        self._context = ScanContext(
            source="",
            end=0,
            options=used_options,
            push_output=self._output.append,
            current_delimiter=get_initial_delimiter(used_options),
            final=False,
        )

    @property
    def closed(self) -> bool:
        return self._closed

    def feed(self, chunk: str) -> list[SplitStatement]:
        """Add ``chunk`` to the stream.

        Raises:
            StreamClosedError: If the stream has already been closed.

        Returns:
            Statements completed by this chunk.
        """
        if self._closed:
            raise StreamClosedError
        if not chunk:
            return []

        self._pending.append(chunk)
        context = self._context
        if context.options.no_split or self._still_open(chunk):
            return []

        self._absorb_pending()
        _drive(context)
        self._compact()
        return self._drain()

    def close(self) -> list[SplitStatement]:
        """Finish the scan and return the remaining statements."""
        if self._closed:
            return []
        self._closed = True

        self._absorb_pending()
        context = self._context
        if context.options.no_split:
            sql = context.source
            return [SplitStatement(text=sql, start=0, end=len(sql), line=1, column=1)]

        context.final = True
        split_query_segment(context)
        _finish(context)
        return self._drain()

    def _still_open(self, chunk: str) -> bool:
        """Whether the string or comment blocking the scan stays open after ``chunk``."""
        context = self._context
        if context.resume_position != context.position or not context.resume_stop:
            return False
        delimiter = context.current_delimiter
        if delimiter and context.end - context.position < len(delimiter):
            return False
        return context.resume_stop not in chunk

    def _absorb_pending(self) -> None:
        if not self._pending:
            return
        context = self._context
        context.source += "".join(self._pending)
        context.end = len(context.source)
        self._pending.clear()

    def _compact(self) -> None:
        context = self._context
        cut = context.current_command_start
        if cut == 0 or context.command_part:
            return

        removed = context.source[:cut]
        newlines = removed.count("\n")
        if newlines:
            context.base_line += newlines
            context.base_column = cut - removed.rfind("\n")
        else:
            context.base_column += cut
        context.base_offset += cut

        context.source = context.source[cut:]
        context.end -= cut
        context.position -= cut
        context.current_command_start = 0
        context.line_mark_offset = 0
        context.line_mark_newlines = 0
        context.resume_position -= cut
        context.resume_offset -= cut

    def _drain(self) -> list[SplitStatement]:
        statements = self._output[:]
        self._output.clear()
        return statements


def split_query_stream(chunks: Iterable[str], options: OptionsLike = None) -> Generator[str, None, None]:
    """Split a script supplied as an iterable of text chunks.

    Yields:
        Statements in source order, identical to ``split_query("".join(chunks))``.
    """
    stream = StatementStream(options)
    for chunk in chunks:
        for statement in stream.feed(chunk):
            yield statement.text
    for statement in stream.close():
        yield statement.text


_result_cache: Optional[SplitResultCache] = None
_cache_lock = threading.Lock()


def _get_result_cache() -> SplitResultCache:
    """Get or create the shared split result cache."""
    global _result_cache
    if _result_cache is None:
        with _cache_lock:
            if _result_cache is None:
                _result_cache = SplitResultCache()
    return _result_cache


@mypyc_attr(allow_interpreted_subclasses=False)
class StatementSplitter:
    """Reusable splitter bound to one set of options, with result caching."""

    __slots__ = ("_options", "_options_key", "_result_cache")

    def __init__(self, options: OptionsLike = None, use_cache: bool = True) -> None:
        """Initialize the splitter.

        Args:
            options: Splitter options or partial overrides of the defaults
            use_cache: Cache split results in the shared result cache
        """
        self._options = resolve_options(options)
        self._options_key = self._options.cache_key()
        self._result_cache: Optional[SplitResultCache] = _get_result_cache() if use_cache else None

    @property
    def options(self) -> SplitterOptions:
        return self._options

    def split(self, sql: str) -> list[str]:
        """Split ``sql``, reusing a cached result for a script seen before."""
        cache = self._result_cache
        if cache is None:
            return split_query(sql, self._options)

        cached_result = cache.get(self._options_key, sql)
        if cached_result is not None:
            logger.debug("Split cache hit (%d statements)", len(cached_result))
            return list(cached_result)

        statements = split_query(sql, self._options)
        cache.put(self._options_key, sql, tuple(statements))
        return statements

    def split_with_positions(self, sql: str) -> list[SplitStatement]:
        return split_query_with_positions(sql, self._options)

    def stream(self) -> StatementStream:
        """Start an incremental split with these options."""
        return StatementStream(self._options)


def split_sql_script(script: str, dialect: Any = None) -> list[str]:
    """Split a SQL script using the option profile of ``dialect``.

    Args:
        script: The SQL script to split
        dialect: Dialect name or sqlglot dialect ('mysql', 'tsql', 'postgres', ...)

    Raises:
        ImproperConfigurationError: If the dialect is unknown.

    Returns:
        List of individual SQL statements
    """
    return StatementSplitter(get_splitter_options(dialect)).split(script)


def clear_splitter_caches() -> None:
    """Clear the shared split result cache."""
    _get_result_cache().clear()


def get_splitter_cache_stats() -> dict[str, Any]:
    """Get statistics from the split result cache.

    Returns:
        Dictionary containing cache statistics
    """
    result_cache = _get_result_cache()
    return {"result_cache": {"size": len(result_cache), "stats": result_cache.stats.as_dict()}}
