"""
Command-line parser.

Single responsibility: Turn a configured command line into argv segments,
expanding environment variables and splitting pipes with shell quoting rules.
"""

import re
import shlex
from dataclasses import dataclass
from typing import Mapping, Optional

from domain.errors import CommandSyntaxError, DirectoryChangeError, UndefinedVariableError


_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")
_SPECIAL_PARAMETERS = frozenset("@*#?$!-")


@dataclass(frozen=True)
class ParsedCommand:
    """
    A command line after variable expansion.

    A plain command has one segment; ``a | b`` has two.
    """

    line: str
    segments: tuple[tuple[str, ...], ...]

    def __str__(self) -> str:
        return " | ".join(shlex.join(argv) for argv in self.segments)

    @property
    def is_pipeline(self) -> bool:
        return len(self.segments) > 1

    @property
    def is_directory_change(self) -> bool:
        """True for the ``cd`` builtin."""
        return not self.is_pipeline and self.segments[0][0] == "cd"

    def directory_target(self, env: Mapping[str, str]) -> str:
        """
        Target directory of a ``cd`` builtin.

        Args:
            env: Environment used for a bare ``cd`` (HOME)

        Returns:
            Directory argument

        Raises:
            DirectoryChangeError: On too many arguments or unset HOME
        """
        args = self.segments[0][1:]
        if len(args) > 1:
            raise DirectoryChangeError(" ".join(args), "too many arguments")
        if not args:
            home = env.get("HOME")
            if not home:
                raise DirectoryChangeError("~", "HOME not set")
            return home
        return args[0]


def parse_command_line(line: str, env: Mapping[str, str], nounset: bool = True) -> ParsedCommand:
    """
    Parse a command line.

    Variables (``$NAME``, ``${NAME}``, ``${NAME:-default}``) are expanded
    outside single quotes. Expanded values are never word-split.

    Args:
        line: Command line as written in the pipeline definition
        env: Environment to expand variables from
        nounset: Treat references to unset variables as errors

    Returns:
        ParsedCommand

    Raises:
        UndefinedVariableError: If a referenced variable is unset and nounset is on
        CommandSyntaxError: On unterminated quotes, empty commands or empty pipe segments
    """
    raw_segments = _expand_and_split(line, env, nounset)

    segments = []
    for raw in raw_segments:
        try:
            argv = tuple(shlex.split(raw))
        except ValueError as e:
            raise CommandSyntaxError(f"{line}: {e}") from e
        if not argv:
            if len(raw_segments) > 1:
                raise CommandSyntaxError(f"syntax error near unexpected token '|': {line}")
            raise CommandSyntaxError(f"empty command: {line!r}")
        segments.append(argv)

    return ParsedCommand(line=line, segments=tuple(segments))


def _expand_and_split(line: str, env: Mapping[str, str], nounset: bool) -> list[str]:
    """Expand variables and split on unquoted pipes, keeping quotes for shlex."""
    segments = []
    current = []
    quote = None
    i = 0

    while i < len(line):
        ch = line[i]

        if quote == "'":
            current.append(ch)
            if ch == "'":
                quote = None
            i += 1
            continue

        if ch == "\\" and i + 1 < len(line):
            current.append(line[i:i + 2])
            i += 2
            continue

        if ch == '"':
            quote = None if quote == '"' else '"'
        elif ch == "'" and quote is None:
            quote = "'"
        elif ch == "$":
            value, i = _expand_variable(line, i, env, nounset)
            if value is None:
                current.append("$")
            else:
                current.append(_quote_value(value, inside_double=quote == '"'))
            continue
        elif ch == "|" and quote is None:
            if line[i + 1:i + 2] == "|":
                raise CommandSyntaxError(f"'||' is not supported: {line}")
            segments.append("".join(current))
            current = []
            i += 1
            continue

        current.append(ch)
        i += 1

    if quote is not None:
        raise CommandSyntaxError(f"unterminated {quote} quote: {line}")

    segments.append("".join(current))
    return segments


def _expand_variable(
    line: str,
    start: int,
    env: Mapping[str, str],
    nounset: bool
) -> tuple[Optional[str], int]:
    """
    Expand the reference beginning at ``line[start] == '$'``.

    Positional parameters (``$1``, ``${2}``) are never set, since stage
    commands run without arguments. Special parameters (``$@``, ``$?``, ...)
    have no meaning outside a shell and are rejected.

    Returns:
        (value, next_index); value is None when ``$`` is a literal dollar sign
    """
    if line[start + 1:start + 2] == "{":
        end = _closing_brace(line, start + 1)
        if end == -1:
            raise CommandSyntaxError(f"missing '}}' in variable reference: {line}")
        inner = line[start + 2:end]

        default = None
        name = inner
        if ":-" in inner:
            name, default = inner.split(":-", 1)

        if name in _SPECIAL_PARAMETERS:
            raise CommandSyntaxError(f"${{{inner}}}: special parameters are not supported")
        if not (_NAME_RE.fullmatch(name) or name.isdigit()):
            raise CommandSyntaxError(f"${{{inner}}}: bad substitution")

        value = None if name.isdigit() else env.get(name)
        if not value and default is not None:
            return _expand_default(default, env, nounset), end + 1
        return _lookup(name, value, nounset), end + 1

    following = line[start + 1:start + 2]
    if following.isdigit():
        return _lookup(following, None, nounset), start + 2
    if following and following in _SPECIAL_PARAMETERS:
        raise CommandSyntaxError(f"${following}: special parameters are not supported")

    match = _NAME_RE.match(line, start + 1)
    if match is None:
        return None, start + 1

    name = match.group(0)
    return _lookup(name, env.get(name), nounset), match.end()


def _closing_brace(line: str, open_index: int) -> int:
    """Index of the ``}`` matching ``line[open_index] == '{'``, or -1."""
    depth = 0
    for i in range(open_index, len(line)):
        if line[i] == "{":
            depth += 1
        elif line[i] == "}":
            depth -= 1
            if depth == 0:
                return i
    return -1


def _expand_default(text: str, env: Mapping[str, str], nounset: bool) -> str:
    """Expand references inside a ``${NAME:-default}`` default."""
    parts = []
    i = 0
    while i < len(text):
        if text[i] == "$":
            value, i = _expand_variable(text, i, env, nounset)
            parts.append("$" if value is None else value)
        else:
            parts.append(text[i])
            i += 1
    return "".join(parts)


def _lookup(name: str, value: Optional[str], nounset: bool) -> str:
    if value is None:
        if nounset:
            raise UndefinedVariableError(name)
        return ""
    return value


def _quote_value(value: str, inside_double: bool) -> str:
    if inside_double:
        return value.replace("\\", "\\\\").replace('"', '\\"')
    if not value:
        return ""
    return shlex.quote(value)
