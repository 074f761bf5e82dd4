"""Parser for Go declarations.

Only the parts of a source file that describe types are kept: the package
clause, imports, type declarations and method signatures. Function bodies and
``var``/``const`` declarations are consumed as balanced token runs.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Union

import ply.lex as lex
import ply.yacc as yacc

from deepcopygen.parsing.go_lexer import GoLexer


@dataclass
class TypeName:
    """Reference to a named type, possibly qualified and instantiated."""

    name: str
    package: str | None = None  # import alias used as qualifier
    args: list[TypeExpr] = field(default_factory=list)


@dataclass
class PointerExpr:
    elem: TypeExpr


@dataclass
class SliceExpr:
    elem: TypeExpr


@dataclass
class ArrayExpr:
    length: str | TypeName | LengthExpr
    elem: TypeExpr


@dataclass
class LengthExpr:
    """An array length written as a constant expression, kept as text."""

    text: str


@dataclass
class MapExpr:
    key: TypeExpr
    value: TypeExpr


@dataclass
class ChanExpr:
    elem: TypeExpr
    direction: str = "chan"  # "chan", "chan<-" or "<-chan"


@dataclass
class FieldSpec:
    """Specification for a struct field before resolution."""

    name: str
    type_expr: TypeExpr
    embedded: bool = False
    tag: str | None = None
    line: int = 0


@dataclass
class StructExpr:
    fields: list[FieldSpec] = field(default_factory=list)


@dataclass
class ParamSpec:
    type_expr: TypeExpr
    name: str | None = None
    variadic: bool = False


@dataclass
class FuncExpr:
    params: list[ParamSpec] = field(default_factory=list)
    results: list[ParamSpec] = field(default_factory=list)


@dataclass
class MethodSpec:
    """A method listed in an interface body."""

    name: str
    signature: FuncExpr


@dataclass
class InterfaceExpr:
    methods: list[MethodSpec] = field(default_factory=list)
    embeds: list[TypeExpr] = field(default_factory=list)
    constraint: bool = False


@dataclass
class ApproxExpr:
    """A ``~T`` constraint term."""

    elem: TypeExpr


TypeExpr = Union[
    TypeName, PointerExpr, SliceExpr, ArrayExpr, MapExpr, ChanExpr,
    StructExpr, InterfaceExpr, FuncExpr, ApproxExpr,
]


@dataclass
class ImportSpec:
    path: str
    alias: str | None = None
    line: int = 0


@dataclass
class TypeParamSpec:
    name: str
    constraint: list[TypeExpr]


@dataclass
class TypeSpec:
    """Specification for a type declaration before resolution."""

    name: str
    type_expr: TypeExpr
    alias: bool = False
    type_params: list[TypeParamSpec] = field(default_factory=list)
    line: int = 0


@dataclass
class ReceiverSpec:
    type_name: str
    pointer: bool = False
    type_params: list[str] = field(default_factory=list)


@dataclass
class MethodDecl:
    """A method declaration; the body is not kept."""

    receiver: ReceiverSpec
    name: str
    signature: FuncExpr
    line: int = 0


@dataclass
class SourceFile:
    package: str
    imports: list[ImportSpec] = field(default_factory=list)
    types: list[TypeSpec] = field(default_factory=list)
    methods: list[MethodDecl] = field(default_factory=list)


def _unquote(literal: str) -> str:
    """Return the contents of a Go string literal."""
    if literal.startswith("`"):
        return literal[1:-1]
    return literal[1:-1].encode("utf-8").decode("unicode_escape")


class GoParser:
    """Parser for the declaration level of Go source files."""

    tokens = [t for t in GoLexer.tokens if t != "NEWLINE"] + ["ARRAY_LEN"]

    start = "source_file"

    def __init__(self) -> None:
        self.lexer = GoLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    # --- File structure ---

    def p_source_file(self, p: yacc.YaccProduction) -> None:
        """source_file : PACKAGE IDENT SEMI top_decl_list"""
        source = SourceFile(package=p[2])
        for decl in p[4]:
            if isinstance(decl, ImportSpec):
                source.imports.append(decl)
            elif isinstance(decl, TypeSpec):
                source.types.append(decl)
            elif isinstance(decl, MethodDecl):
                source.methods.append(decl)
        p[0] = source

    def p_top_decl_list_empty(self, p: yacc.YaccProduction) -> None:
        """top_decl_list : empty"""
        p[0] = []

    def p_top_decl_list_decl(self, p: yacc.YaccProduction) -> None:
        """top_decl_list : top_decl_list top_decl SEMI"""
        p[0] = p[1]
        p[0].extend(p[2])

    def p_top_decl_list_semi(self, p: yacc.YaccProduction) -> None:
        """top_decl_list : top_decl_list SEMI"""
        p[0] = p[1]

    def p_top_decl(self, p: yacc.YaccProduction) -> None:
        """top_decl : import_decl
                    | type_decl
                    | func_decl
                    | method_decl
                    | other_decl"""
        p[0] = p[1]

    def p_empty(self, p: yacc.YaccProduction) -> None:
        """empty :"""
        p[0] = None

    def p_opt_semi(self, p: yacc.YaccProduction) -> None:
        """opt_semi : empty
                    | SEMI"""
        p[0] = None

    def p_opt_comma(self, p: yacc.YaccProduction) -> None:
        """opt_comma : empty
                     | COMMA"""
        p[0] = None

    # --- Imports ---

    def p_import_decl_single(self, p: yacc.YaccProduction) -> None:
        """import_decl : IMPORT import_spec"""
        p[0] = [p[2]]

    def p_import_decl_group(self, p: yacc.YaccProduction) -> None:
        """import_decl : IMPORT LPAREN import_spec_list opt_semi RPAREN"""
        p[0] = p[3]

    def p_import_decl_empty(self, p: yacc.YaccProduction) -> None:
        """import_decl : IMPORT LPAREN RPAREN"""
        p[0] = []

    def p_import_spec_list_single(self, p: yacc.YaccProduction) -> None:
        """import_spec_list : import_spec"""
        p[0] = [p[1]]

    def p_import_spec_list_multiple(self, p: yacc.YaccProduction) -> None:
        """import_spec_list : import_spec_list SEMI import_spec"""
        p[0] = p[1] + [p[3]]

    def p_import_spec(self, p: yacc.YaccProduction) -> None:
        """import_spec : STRING"""
        p[0] = ImportSpec(path=_unquote(p[1]), line=p.lineno(1))

    def p_import_spec_alias(self, p: yacc.YaccProduction) -> None:
        """import_spec : IDENT STRING
                       | DOT STRING"""
        p[0] = ImportSpec(path=_unquote(p[2]), alias=p[1], line=p.lineno(1))

    # --- Type declarations ---

    def p_type_decl_single(self, p: yacc.YaccProduction) -> None:
        """type_decl : TYPE type_spec"""
        p[0] = [p[2]]

    def p_type_decl_group(self, p: yacc.YaccProduction) -> None:
        """type_decl : TYPE LPAREN type_spec_list opt_semi RPAREN"""
        p[0] = p[3]

    def p_type_decl_empty(self, p: yacc.YaccProduction) -> None:
        """type_decl : TYPE LPAREN RPAREN"""
        p[0] = []

    def p_type_spec_list_single(self, p: yacc.YaccProduction) -> None:
        """type_spec_list : type_spec"""
        p[0] = [p[1]]

    def p_type_spec_list_multiple(self, p: yacc.YaccProduction) -> None:
        """type_spec_list : type_spec_list SEMI type_spec"""
        p[0] = p[1] + [p[3]]

    def p_type_spec(self, p: yacc.YaccProduction) -> None:
        """type_spec : IDENT type_expr"""
        p[0] = TypeSpec(name=p[1], type_expr=p[2], line=p.lineno(1))

    def p_type_spec_alias(self, p: yacc.YaccProduction) -> None:
        """type_spec : IDENT ASSIGN type_expr"""
        p[0] = TypeSpec(name=p[1], type_expr=p[3], alias=True, line=p.lineno(1))

    def p_type_spec_generic(self, p: yacc.YaccProduction) -> None:
        """type_spec : IDENT type_params type_expr"""
        p[0] = TypeSpec(name=p[1], type_expr=p[3], type_params=p[2], line=p.lineno(1))

    def p_type_params(self, p: yacc.YaccProduction) -> None:
        """type_params : LBRACK type_param_list opt_comma RBRACK"""
        p[0] = p[2]

    def p_type_param_list_single(self, p: yacc.YaccProduction) -> None:
        """type_param_list : type_param_decl"""
        p[0] = p[1]

    def p_type_param_list_multiple(self, p: yacc.YaccProduction) -> None:
        """type_param_list : type_param_list COMMA type_param_decl"""
        p[0] = p[1] + p[3]

    def p_type_param_decl(self, p: yacc.YaccProduction) -> None:
        """type_param_decl : ident_list constraint"""
        p[0] = [TypeParamSpec(name=name, constraint=p[2]) for name in p[1]]

    def p_constraint_single(self, p: yacc.YaccProduction) -> None:
        """constraint : constraint_term"""
        p[0] = [p[1]]

    def p_constraint_union(self, p: yacc.YaccProduction) -> None:
        """constraint : constraint OP constraint_term"""
        p[0] = p[1] + [p[3]]

    def p_constraint_term(self, p: yacc.YaccProduction) -> None:
        """constraint_term : type_expr"""
        p[0] = p[1]

    def p_constraint_term_approx(self, p: yacc.YaccProduction) -> None:
        """constraint_term : OP type_expr"""
        p[0] = ApproxExpr(elem=p[2])

    def p_ident_list_single(self, p: yacc.YaccProduction) -> None:
        """ident_list : IDENT"""
        p[0] = [p[1]]

    def p_ident_list_multiple(self, p: yacc.YaccProduction) -> None:
        """ident_list : ident_list COMMA IDENT"""
        p[0] = p[1] + [p[3]]

    # --- Type expressions ---

    def p_type_expr_name(self, p: yacc.YaccProduction) -> None:
        """type_expr : type_name"""
        p[0] = p[1]

    def p_type_expr_instance(self, p: yacc.YaccProduction) -> None:
        """type_expr : type_name LBRACK type_arg_list opt_comma RBRACK"""
        p[1].args = p[3]
        p[0] = p[1]

    def p_type_expr_pointer(self, p: yacc.YaccProduction) -> None:
        """type_expr : STAR type_expr"""
        p[0] = PointerExpr(elem=p[2])

    def p_type_expr_slice(self, p: yacc.YaccProduction) -> None:
        """type_expr : LBRACK RBRACK type_expr"""
        p[0] = SliceExpr(elem=p[3])

    def p_type_expr_array(self, p: yacc.YaccProduction) -> None:
        """type_expr : LBRACK array_len RBRACK type_expr"""
        p[0] = ArrayExpr(length=p[2], elem=p[4])

    def p_type_expr_array_const(self, p: yacc.YaccProduction) -> None:
        """type_expr : LBRACK type_expr RBRACK type_expr"""
        # A constant name reads like a type name until the element follows
        p[0] = ArrayExpr(length=p[2], elem=p[4])

    def p_type_expr_map(self, p: yacc.YaccProduction) -> None:
        """type_expr : MAP LBRACK type_expr RBRACK type_expr"""
        p[0] = MapExpr(key=p[3], value=p[5])

    def p_type_expr_chan(self, p: yacc.YaccProduction) -> None:
        """type_expr : CHAN type_expr"""
        p[0] = ChanExpr(elem=p[2])

    def p_type_expr_send_chan(self, p: yacc.YaccProduction) -> None:
        """type_expr : SEND_CHAN type_expr"""
        p[0] = ChanExpr(elem=p[2], direction="chan<-")

    def p_type_expr_recv_chan(self, p: yacc.YaccProduction) -> None:
        """type_expr : RECV_CHAN type_expr"""
        p[0] = ChanExpr(elem=p[2], direction="<-chan")

    def p_type_expr_composite(self, p: yacc.YaccProduction) -> None:
        """type_expr : struct_type
                     | interface_type"""
        p[0] = p[1]

    def p_type_expr_func(self, p: yacc.YaccProduction) -> None:
        """type_expr : FUNC signature"""
        p[0] = p[2]

    def p_type_name(self, p: yacc.YaccProduction) -> None:
        """type_name : IDENT"""
        p[0] = TypeName(name=p[1])

    def p_type_name_qualified(self, p: yacc.YaccProduction) -> None:
        """type_name : IDENT DOT IDENT"""
        p[0] = TypeName(name=p[3], package=p[1])

    def p_type_arg_list_single(self, p: yacc.YaccProduction) -> None:
        """type_arg_list : type_expr"""
        p[0] = [p[1]]

    def p_type_arg_list_multiple(self, p: yacc.YaccProduction) -> None:
        """type_arg_list : type_arg_list COMMA type_expr"""
        p[0] = p[1] + [p[3]]

    def p_array_len_literal(self, p: yacc.YaccProduction) -> None:
        """array_len : NUMBER"""
        p[0] = p[1]

    def p_array_len_expression(self, p: yacc.YaccProduction) -> None:
        """array_len : ARRAY_LEN"""
        p[0] = LengthExpr(text=p[1])

    # --- Structs ---

    def p_struct_type(self, p: yacc.YaccProduction) -> None:
        """struct_type : STRUCT LBRACE field_decl_list opt_semi RBRACE"""
        p[0] = StructExpr(fields=p[3])

    def p_struct_type_empty(self, p: yacc.YaccProduction) -> None:
        """struct_type : STRUCT LBRACE RBRACE"""
        p[0] = StructExpr()

    def p_field_decl_list_single(self, p: yacc.YaccProduction) -> None:
        """field_decl_list : field_decl"""
        p[0] = p[1]

    def p_field_decl_list_multiple(self, p: yacc.YaccProduction) -> None:
        """field_decl_list : field_decl_list SEMI field_decl"""
        p[0] = p[1] + p[3]

    # The leading identifier is shifted in every field form, so that
    # ``a [N]T`` and an embedded ``A[T]`` part only once the bracket closes.

    def p_field_decl(self, p: yacc.YaccProduction) -> None:
        """field_decl : IDENT type_expr opt_tag"""
        p[0] = [FieldSpec(name=p[1], type_expr=p[2], tag=p[3], line=p.lineno(1))]

    def p_field_decl_names(self, p: yacc.YaccProduction) -> None:
        """field_decl : IDENT COMMA ident_list type_expr opt_tag"""
        line = p.lineno(1)
        p[0] = [
            FieldSpec(name=name, type_expr=p[4], tag=p[5], line=line)
            for name in [p[1]] + p[3]
        ]

    def p_field_decl_embedded(self, p: yacc.YaccProduction) -> None:
        """field_decl : IDENT opt_tag"""
        p[0] = [FieldSpec(
            name=p[1], type_expr=TypeName(name=p[1]), embedded=True, tag=p[2], line=p.lineno(1),
        )]

    def p_field_decl_embedded_qualified(self, p: yacc.YaccProduction) -> None:
        """field_decl : IDENT DOT IDENT opt_tag"""
        p[0] = [FieldSpec(
            name=p[3],
            type_expr=TypeName(name=p[3], package=p[1]),
            embedded=True,
            tag=p[4],
            line=p.lineno(1),
        )]

    def p_field_decl_embedded_instance(self, p: yacc.YaccProduction) -> None:
        """field_decl : IDENT LBRACK type_expr RBRACK opt_tag
                      | IDENT LBRACK type_expr COMMA RBRACK opt_tag
                      | IDENT LBRACK type_expr COMMA type_arg_list opt_comma RBRACK opt_tag"""
        args = [p[3]]
        if len(p) == 9:
            args.extend(p[5])
        p[0] = [FieldSpec(
            name=p[1],
            type_expr=TypeName(name=p[1], args=args),
            embedded=True,
            tag=p[len(p) - 1],
            line=p.lineno(1),
        )]

    def p_field_decl_embedded_qualified_instance(self, p: yacc.YaccProduction) -> None:
        """field_decl : IDENT DOT IDENT LBRACK type_arg_list opt_comma RBRACK opt_tag"""
        p[0] = [FieldSpec(
            name=p[3],
            type_expr=TypeName(name=p[3], package=p[1], args=p[5]),
            embedded=True,
            tag=p[8],
            line=p.lineno(1),
        )]

    def p_field_decl_embedded_pointer(self, p: yacc.YaccProduction) -> None:
        """field_decl : STAR type_name opt_tag
                      | STAR type_name LBRACK type_arg_list opt_comma RBRACK opt_tag"""
        if len(p) == 8:
            p[2].args = p[4]
        p[0] = [FieldSpec(
            name=p[2].name,
            type_expr=PointerExpr(elem=p[2]),
            embedded=True,
            tag=p[len(p) - 1],
            line=p.lineno(1),
        )]

    def p_opt_tag(self, p: yacc.YaccProduction) -> None:
        """opt_tag : empty
                   | STRING"""
        p[0] = p[1]

    # --- Interfaces ---

    def p_interface_type(self, p: yacc.YaccProduction) -> None:
        """interface_type : INTERFACE LBRACE interface_elem_list opt_semi RBRACE"""
        iface = InterfaceExpr()
        for elem in p[3]:
            if isinstance(elem, MethodSpec):
                iface.methods.append(elem)
            elif len(elem) == 1 and isinstance(elem[0], (TypeName, InterfaceExpr)):
                iface.embeds.append(elem[0])
            else:
                iface.constraint = True
        p[0] = iface

    def p_interface_type_empty(self, p: yacc.YaccProduction) -> None:
        """interface_type : INTERFACE LBRACE RBRACE"""
        p[0] = InterfaceExpr()

    def p_interface_elem_list_single(self, p: yacc.YaccProduction) -> None:
        """interface_elem_list : interface_elem"""
        p[0] = [p[1]]

    def p_interface_elem_list_multiple(self, p: yacc.YaccProduction) -> None:
        """interface_elem_list : interface_elem_list SEMI interface_elem"""
        p[0] = p[1] + [p[3]]

    def p_interface_elem_method(self, p: yacc.YaccProduction) -> None:
        """interface_elem : IDENT signature"""
        p[0] = MethodSpec(name=p[1], signature=p[2])

    def p_interface_elem_embedded(self, p: yacc.YaccProduction) -> None:
        """interface_elem : constraint"""
        p[0] = p[1]

    # --- Signatures ---

    def p_signature(self, p: yacc.YaccProduction) -> None:
        """signature : parameters"""
        p[0] = FuncExpr(params=p[1])

    def p_signature_result(self, p: yacc.YaccProduction) -> None:
        """signature : parameters result"""
        p[0] = FuncExpr(params=p[1], results=p[2])

    def p_result_list(self, p: yacc.YaccProduction) -> None:
        """result : parameters"""
        p[0] = p[1]

    def p_result_single(self, p: yacc.YaccProduction) -> None:
        """result : type_expr"""
        p[0] = [ParamSpec(type_expr=p[1])]

    def p_parameters(self, p: yacc.YaccProduction) -> None:
        """parameters : LPAREN param_list opt_comma RPAREN"""
        p[0] = _group_params(p[2])

    def p_parameters_empty(self, p: yacc.YaccProduction) -> None:
        """parameters : LPAREN RPAREN"""
        p[0] = []

    def p_param_list_single(self, p: yacc.YaccProduction) -> None:
        """param_list : param_decl"""
        p[0] = [p[1]]

    def p_param_list_multiple(self, p: yacc.YaccProduction) -> None:
        """param_list : param_list COMMA param_decl"""
        p[0] = p[1] + [p[3]]

    def p_param_decl(self, p: yacc.YaccProduction) -> None:
        """param_decl : type_expr"""
        p[0] = ParamSpec(type_expr=p[1])

    def p_param_decl_named(self, p: yacc.YaccProduction) -> None:
        """param_decl : IDENT type_expr"""
        p[0] = ParamSpec(type_expr=p[2], name=p[1])

    def p_param_decl_instance(self, p: yacc.YaccProduction) -> None:
        """param_decl : IDENT LBRACK type_expr RBRACK
                      | IDENT LBRACK type_expr COMMA RBRACK
                      | IDENT LBRACK type_expr COMMA type_arg_list opt_comma RBRACK"""
        args = [p[3]]
        if len(p) == 8:
            args.extend(p[5])
        p[0] = ParamSpec(type_expr=TypeName(name=p[1], args=args))

    def p_param_decl_variadic(self, p: yacc.YaccProduction) -> None:
        """param_decl : ELLIPSIS type_expr"""
        p[0] = ParamSpec(type_expr=p[2], variadic=True)

    def p_param_decl_named_variadic(self, p: yacc.YaccProduction) -> None:
        """param_decl : IDENT ELLIPSIS type_expr"""
        p[0] = ParamSpec(type_expr=p[3], name=p[1], variadic=True)

    # --- Functions and methods ---

    def p_func_decl(self, p: yacc.YaccProduction) -> None:
        """func_decl : FUNC IDENT signature opt_block
                     | FUNC IDENT type_params signature opt_block"""
        p[0] = []

    def p_method_decl(self, p: yacc.YaccProduction) -> None:
        """method_decl : FUNC LPAREN receiver RPAREN IDENT signature opt_block"""
        p[0] = [MethodDecl(receiver=p[3], name=p[5], signature=p[6], line=p.lineno(1))]

    def p_receiver(self, p: yacc.YaccProduction) -> None:
        """receiver : receiver_type
                    | IDENT receiver_type"""
        p[0] = p[len(p) - 1]

    def p_receiver_type(self, p: yacc.YaccProduction) -> None:
        """receiver_type : IDENT"""
        p[0] = ReceiverSpec(type_name=p[1])

    def p_receiver_type_pointer(self, p: yacc.YaccProduction) -> None:
        """receiver_type : STAR IDENT"""
        p[0] = ReceiverSpec(type_name=p[2], pointer=True)

    def p_receiver_type_generic(self, p: yacc.YaccProduction) -> None:
        """receiver_type : IDENT LBRACK ident_list RBRACK"""
        p[0] = ReceiverSpec(type_name=p[1], type_params=p[3])

    def p_receiver_type_generic_pointer(self, p: yacc.YaccProduction) -> None:
        """receiver_type : STAR IDENT LBRACK ident_list RBRACK"""
        p[0] = ReceiverSpec(type_name=p[2], pointer=True, type_params=p[4])

    def p_opt_block(self, p: yacc.YaccProduction) -> None:
        """opt_block : empty
                     | LBRACE inner_tokens RBRACE"""
        p[0] = None

    # --- Skipped declarations and bodies ---

    def p_other_decl(self, p: yacc.YaccProduction) -> None:
        """other_decl : VAR line_tokens
                      | CONST line_tokens"""
        p[0] = []

    def p_line_tokens(self, p: yacc.YaccProduction) -> None:
        """line_tokens : token_item
                       | line_tokens token_item"""
        p[0] = None

    def p_inner_tokens(self, p: yacc.YaccProduction) -> None:
        """inner_tokens : empty
                        | inner_tokens token_item
                        | inner_tokens SEMI"""
        p[0] = None

    def p_token_item_group(self, p: yacc.YaccProduction) -> None:
        """token_item : LPAREN inner_tokens RPAREN
                      | LBRACK inner_tokens RBRACK
                      | LBRACE inner_tokens RBRACE"""
        p[0] = None

    def p_token_item(self, p: yacc.YaccProduction) -> None:
        """token_item : PACKAGE
                      | IMPORT
                      | TYPE
                      | STRUCT
                      | INTERFACE
                      | MAP
                      | CHAN
                      | SEND_CHAN
                      | RECV_CHAN
                      | FUNC
                      | VAR
                      | CONST
                      | ARRAY_LEN
                      | IDENT
                      | NUMBER
                      | STRING
                      | RUNE
                      | ARROW
                      | ELLIPSIS
                      | DOT
                      | STAR
                      | COMMA
                      | ASSIGN
                      | OP"""
        p[0] = None

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            value = "newline" if p.type == "SEMI" and p.value == "\n" else p.value
            raise SyntaxError(f"Syntax error at '{value}' (line {p.lineno})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> SourceFile:
        """Parse one source file."""
        if self.parser is None:
            # Identifiers followed by ``[`` are shifted before deciding between
            # an array and an instance; the table builder reports those
            # conflicts, which are silenced here.
            self.build(debug=False, write_tables=False, errorlog=yacc.NullLogger())

        return self.parser.parse(data, lexer=_ArrayLengthLexer(self.lexer))


# Tokens that end an operand; a following ``*`` or ``(`` is then an operator
_OPERAND_END = frozenset({"IDENT", "NUMBER", "STRING", "RUNE", "RPAREN", "RBRACK", "RBRACE"})


class _ArrayLengthLexer:
    """Feeds the parser, folding constant expressions in brackets to ARRAY_LEN.

    ``[N]`` and ``[pkg.N]`` stay as tokens so the length can be resolved;
    ``[n + 1]`` or ``[len(s)]`` become one token carrying the source text.
    """

    def __init__(self, lexer: GoLexer) -> None:
        self.lexer = lexer
        self._tokens: Iterator[lex.LexToken] = iter(())

    def input(self, data: str) -> None:
        self._tokens = iter(_fold_array_lengths(self.lexer.tokenize(data), data))

    def token(self) -> lex.LexToken | None:
        return next(self._tokens, None)


def _fold_array_lengths(tokens: list[lex.LexToken], data: str) -> list[lex.LexToken]:
    folded: list[lex.LexToken] = []
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        folded.append(tok)
        i += 1
        if tok.type != "LBRACK":
            continue
        end = _matching_bracket(tokens, i - 1)
        if end is None or not _is_constant_expression(tokens[i:end]):
            continue
        first, last = tokens[i], tokens[end - 1]
        length = lex.LexToken()
        length.type = "ARRAY_LEN"
        length.value = " ".join(data[first.lexpos:last.lexpos + len(last.value)].split())
        length.lineno = first.lineno
        length.lexpos = first.lexpos
        folded.append(length)
        folded.append(tokens[end])
        i = end + 1
    return folded


def _matching_bracket(tokens: list[lex.LexToken], start: int) -> int | None:
    """Return the index of the token closing the one at ``start``."""
    stack = []
    for i in range(start, len(tokens)):
        kind = tokens[i].type
        if kind in GoLexer.OPENERS:
            stack.append(GoLexer.OPENERS[kind])
        elif kind in GoLexer.CLOSERS:
            if not stack or stack.pop() != kind:
                return None
            if not stack:
                return i
    return None


def _is_constant_expression(inner: list[lex.LexToken]) -> bool:
    """Report whether bracket contents can only be a constant expression.

    Type arguments and type parameter lists never hold operators outside
    ``~`` and ``|``, nor a ``*`` or call following an operand. Following the
    language rules, ``[P *C]`` is therefore read as an array length.
    """
    depth = 0
    prev: lex.LexToken | None = None
    for tok in inner:
        if depth == 0:
            if tok.type == "COMMA":
                return False
            if tok.type in ("STRING", "RUNE", "ARROW"):
                return True
            if tok.type == "NUMBER" and len(inner) > 1:
                return True
            if tok.type == "OP" and tok.value not in ("~", "|"):
                return True
            if tok.type in ("STAR", "LPAREN") and prev is not None and prev.type in _OPERAND_END:
                return True
        if tok.type in GoLexer.OPENERS:
            depth += 1
        elif tok.type in GoLexer.CLOSERS:
            depth -= 1
        if depth == 0:
            prev = tok
    return False


def _group_params(params: list[ParamSpec]) -> list[ParamSpec]:
    """Apply a trailing type to the bare names before it.

    ``(a, b int)`` parses as a type ``a`` followed by ``b int``; Go reads it
    as two ``int`` parameters named ``a`` and ``b``.
    """
    if not any(param.name is not None for param in params):
        return params
    grouped: list[ParamSpec] = []
    pending: list[str] = []
    for param in params:
        if param.name is None:
            expr = param.type_expr
            if isinstance(expr, TypeName) and expr.package is None and not expr.args:
                pending.append(expr.name)
                continue
            grouped.append(param)
            continue
        for name in pending:
            grouped.append(ParamSpec(type_expr=param.type_expr, name=name, variadic=param.variadic))
        pending = []
        grouped.append(param)
    return grouped
