"""Canonical layout and validation of generated source."""

from __future__ import annotations

import logging
import subprocess
from collections import defaultdict
from functools import lru_cache

from deepcopygen.errors import FormattingError
from deepcopygen.parsing.go_lexer import GoLexer
from deepcopygen.parsing.go_parser import GoParser

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def _lexer() -> GoLexer:
    lexer = GoLexer()
    lexer.build()
    return lexer


@lru_cache(maxsize=1)
def _parser() -> GoParser:
    return GoParser()


def format_source(source: str, *, gofmt: str | None = None) -> str:
    """Return ``source`` in canonical layout.

    Lines are indented with one tab per open bracket, trailing whitespace is
    removed, runs of blank lines are collapsed and the text ends with exactly
    one newline. Lines inside multi-line raw strings or block comments are
    left as they are. The result must parse as a Go file.

    With ``gofmt`` set to an executable, the source is piped through it
    instead.
    """
    if gofmt is not None:
        return _run_gofmt(source, gofmt)

    try:
        tokens = _lexer().raw_tokenize(source)
    except SyntaxError as e:
        raise FormattingError(f"error formatting source: {e}", source) from e

    verbatim: set[int] = set()
    first: dict[int, str] = {}
    delta: dict[int, int] = defaultdict(int)
    stack = []
    for tok in tokens:
        if tok.type == "NEWLINE":
            if tok.value.startswith("/*"):
                verbatim.update(range(tok.lineno + 1, tok.lineno + tok.value.count("\n") + 1))
            continue
        first.setdefault(tok.lineno, tok.type)
        if tok.type == "STRING" and "\n" in tok.value:
            verbatim.update(range(tok.lineno + 1, tok.lineno + tok.value.count("\n") + 1))
        if tok.type in GoLexer.OPENERS:
            stack.append(tok)
            delta[tok.lineno] += 1
        elif tok.type in GoLexer.CLOSERS:
            if not stack or GoLexer.OPENERS[stack[-1].type] != tok.type:
                raise FormattingError(
                    f"error formatting source: unexpected '{tok.value}' (line {tok.lineno})",
                    source,
                )
            stack.pop()
            delta[tok.lineno] -= 1
    if stack:
        raise FormattingError(
            f"error formatting source: unclosed '{stack[-1].value}' (line {stack[-1].lineno})",
            source,
        )

    lines: list[str] = []
    depth = 0
    for number, line in enumerate(source.split("\n"), start=1):
        if number in verbatim:
            lines.append(line)
        else:
            text = line.strip()
            indent = depth - 1 if first.get(number) in GoLexer.CLOSERS else depth
            if text:
                lines.append("\t" * max(indent, 0) + text)
            elif lines and lines[-1] != "":
                lines.append("")
        depth += delta[number]
    while lines and lines[-1] == "":
        lines.pop()
    formatted = "\n".join(lines) + "\n"

    try:
        _parser().parse(formatted)
    except SyntaxError as e:
        raise FormattingError(f"error formatting source: {e}", source) from e
    return formatted


def _run_gofmt(source: str, gofmt: str) -> str:
    logger.debug("Formatting with %s", gofmt)
    try:
        result = subprocess.run(
            [gofmt],
            input=source,
            capture_output=True,
            text=True,
            check=False,
        )
    except OSError as e:
        raise FormattingError(f"error running {gofmt}: {e}", source) from e
    if result.returncode != 0:
        raise FormattingError(f"error formatting source: {result.stderr.strip()}", source)
    return result.stdout
