"""Lexer and parser for ``//go:build`` constraint expressions."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Union

import ply.lex as lex
import ply.yacc as yacc


@dataclass
class TagExpr:
    name: str

    def matches(self, has_tag: Callable[[str], bool]) -> bool:
        return has_tag(self.name)


@dataclass
class NotExpr:
    operand: ConstraintExpr

    def matches(self, has_tag: Callable[[str], bool]) -> bool:
        return not self.operand.matches(has_tag)


@dataclass
class AndExpr:
    left: ConstraintExpr
    right: ConstraintExpr

    def matches(self, has_tag: Callable[[str], bool]) -> bool:
        return self.left.matches(has_tag) and self.right.matches(has_tag)


@dataclass
class OrExpr:
    left: ConstraintExpr
    right: ConstraintExpr

    def matches(self, has_tag: Callable[[str], bool]) -> bool:
        return self.left.matches(has_tag) or self.right.matches(has_tag)


ConstraintExpr = Union[TagExpr, NotExpr, AndExpr, OrExpr]


class ConstraintLexer:
    """Lexer for build constraint expressions."""

    tokens = ["TAG", "AND", "OR", "NOT", "LPAREN", "RPAREN"]

    t_AND = r"&&"
    t_OR = r"\|\|"
    t_NOT = r"!"
    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_TAG = r"[\w.]+"

    t_ignore = " \t\r"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(f"Illegal character '{t.value[0]}' in build constraint")

    def build(self, **kwargs) -> None:  # type: ignore
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        return self.lexer.token()


class ConstraintParser:
    """Parser for the expression following ``//go:build``."""

    tokens = ConstraintLexer.tokens

    # Loosest to tightest
    precedence = (
        ("left", "OR"),
        ("left", "AND"),
        ("right", "NOT"),
    )

    def __init__(self) -> None:
        self.lexer = ConstraintLexer()
        self.parser: yacc.LRParser | None = None

    def p_expr_or(self, p: yacc.YaccProduction) -> None:
        """expr : expr OR expr"""
        p[0] = OrExpr(p[1], p[3])

    def p_expr_and(self, p: yacc.YaccProduction) -> None:
        """expr : expr AND expr"""
        p[0] = AndExpr(p[1], p[3])

    def p_expr_not(self, p: yacc.YaccProduction) -> None:
        """expr : NOT expr"""
        p[0] = NotExpr(p[2])

    def p_expr_group(self, p: yacc.YaccProduction) -> None:
        """expr : LPAREN expr RPAREN"""
        p[0] = p[2]

    def p_expr_tag(self, p: yacc.YaccProduction) -> None:
        """expr : TAG"""
        p[0] = TagExpr(p[1])

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' in build constraint")
        raise SyntaxError("Unexpected end of build constraint")

    def build(self, **kwargs) -> None:  # type: ignore
        self.lexer.build(debug=False, errorlog=yacc.NullLogger())
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, text: str) -> ConstraintExpr:
        if self.parser is None:
            self.build(debug=False, write_tables=False, errorlog=yacc.NullLogger())
        return self.parser.parse(text, lexer=self.lexer)  # type: ignore[union-attr]


def parse_plus_build(lines: list[str]) -> ConstraintExpr | None:
    """Combine legacy ``// +build`` lines into one expression.

    Each line is a space-separated list of alternatives, each a
    comma-separated list of terms; the lines themselves must all hold.
    """
    combined: ConstraintExpr | None = None
    for line in lines:
        line_expr: ConstraintExpr | None = None
        for option in line.split():
            option_expr: ConstraintExpr | None = None
            for term in option.split(","):
                negated = term.startswith("!")
                name = term.lstrip("!")
                if not name:
                    raise SyntaxError(f"invalid build constraint term '{term}'")
                term_expr: ConstraintExpr = TagExpr(name)
                if negated:
                    term_expr = NotExpr(term_expr)
                option_expr = term_expr if option_expr is None else AndExpr(option_expr, term_expr)
            if option_expr is None:
                continue
            line_expr = option_expr if line_expr is None else OrExpr(line_expr, option_expr)
        if line_expr is None:
            continue
        combined = line_expr if combined is None else AndExpr(combined, line_expr)
    return combined
