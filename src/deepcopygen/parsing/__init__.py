"""Parsing module for Go source declarations."""

from deepcopygen.parsing.go_lexer import GoLexer
from deepcopygen.parsing.go_parser import GoParser, SourceFile, TypeSpec

__all__ = [
    "GoLexer",
    "GoParser",
    "SourceFile",
    "TypeSpec",
]
