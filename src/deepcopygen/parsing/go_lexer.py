"""Lexer for Go source files."""

import ply.lex as lex


class GoLexer:
    """Lexer for tokenizing Go source.

    Keywords that only matter inside function bodies are lexed as
    identifiers. ``token()`` applies Go's automatic semicolon insertion.
    """

    # Reserved keywords
    reserved = {
        "package": "PACKAGE",
        "import": "IMPORT",
        "type": "TYPE",
        "struct": "STRUCT",
        "interface": "INTERFACE",
        "map": "MAP",
        "chan": "CHAN",
        "func": "FUNC",
        "var": "VAR",
        "const": "CONST",
    }

    # Token list
    tokens = [
        "IDENT",
        "NUMBER",
        "STRING",
        "RUNE",
        "SEND_CHAN",
        "RECV_CHAN",
        "ARROW",
        "ELLIPSIS",
        "DOT",
        "STAR",
        "COMMA",
        "ASSIGN",
        "OP",
        "SEMI",
        "LPAREN",
        "RPAREN",
        "LBRACK",
        "RBRACK",
        "LBRACE",
        "RBRACE",
        "NEWLINE",
    ] + list(reserved.values())

    # A newline after one of these becomes a semicolon
    SEMICOLON_TRIGGERS = frozenset({
        "IDENT", "NUMBER", "STRING", "RUNE", "RPAREN", "RBRACK", "RBRACE",
    })

    OPENERS = {"LPAREN": "RPAREN", "LBRACK": "RBRACK", "LBRACE": "RBRACE"}
    CLOSERS = frozenset(OPENERS.values())

    # Simple tokens
    t_COMMA = r","
    t_SEMI = r";"
    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_LBRACK = r"\["
    t_RBRACK = r"\]"
    t_LBRACE = r"\{"
    t_RBRACE = r"\}"

    # Ignored characters (spaces, tabs, carriage returns)
    t_ignore = " \t\r"

    def __init__(self) -> None:
        self.lexer: lex.LexToken = None  # type: ignore
        self._last: lex.LexToken | None = None

    def t_COMMENT(self, t: lex.LexToken) -> None:
        r"//[^\n]*"

    def t_BLOCK_COMMENT(self, t: lex.LexToken) -> lex.LexToken | None:
        r"/\*(.|\n)*?\*/"
        newlines = t.value.count("\n")
        if not newlines:
            return None
        # A comment spanning lines acts like a newline
        t.lexer.lineno += newlines
        t.type = "NEWLINE"
        return t

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r'"([^"\\\n]|\\.)*"|`[^`]*`'
        t.lexer.lineno += t.value.count("\n")
        return t

    def t_RUNE(self, t: lex.LexToken) -> lex.LexToken:
        r"'([^'\\\n]|\\.)*'"
        return t

    def t_RECV_CHAN(self, t: lex.LexToken) -> lex.LexToken:
        r"<-[ \t]*chan\b"
        return t

    def t_SEND_CHAN(self, t: lex.LexToken) -> lex.LexToken:
        r"chan[ \t]*<-"
        return t

    def t_ARROW(self, t: lex.LexToken) -> lex.LexToken:
        r"<-"
        return t

    def t_ELLIPSIS(self, t: lex.LexToken) -> lex.LexToken:
        r"\.\.\."
        return t

    def t_NUMBER(self, t: lex.LexToken) -> lex.LexToken:
        r"0[xX][0-9a-fA-F_]*(\.[0-9a-fA-F_]*)?([pP][-+]?[0-9_]+)?i?|0[oObB][0-9_]+i?|([0-9][0-9_]*(\.[0-9_]*)?|\.[0-9][0-9_]*)([eE][-+]?[0-9_]+)?i?"
        return t

    def t_DOT(self, t: lex.LexToken) -> lex.LexToken:
        r"\."
        return t

    def t_OP(self, t: lex.LexToken) -> lex.LexToken:
        r"<<=|>>=|&\^=|&&|\|\||\+\+|--|==|!=|<=|>=|:=|<<|>>|&\^|\+=|-=|\*=|/=|%=|&=|\|=|\^=|[-+/%&|^<>!~:]"
        return t

    def t_ASSIGN(self, t: lex.LexToken) -> lex.LexToken:
        r"="
        return t

    def t_STAR(self, t: lex.LexToken) -> lex.LexToken:
        r"\*"
        return t

    def t_IDENT(self, t: lex.LexToken) -> lex.LexToken:
        r"[^\W\d]\w*"
        # Check if it's a reserved word
        t.type = self.reserved.get(t.value, "IDENT")
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> lex.LexToken:
        r"\n+"
        t.lexer.lineno += len(t.value)
        return t

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(f"Illegal character '{t.value[0]}' at line {t.lineno}")

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.lineno = 1
        self.lexer.input(data)
        self._last = None

    def _inserts_semicolon(self) -> bool:
        last = self._last
        if last is None:
            return False
        if last.type == "OP":
            return last.value in ("++", "--")
        return last.type in self.SEMICOLON_TRIGGERS

    def token(self) -> lex.LexToken | None:
        """Return the next token, turning qualifying newlines into SEMI."""
        while True:
            tok = self.lexer.token()
            if tok is None:
                if self._inserts_semicolon():
                    # Semicolon before end of input
                    tok = lex.LexToken()
                    tok.type = "SEMI"
                    tok.value = "\n"
                    tok.lineno = self.lexer.lineno
                    tok.lexpos = self.lexer.lexpos
                    self._last = tok
                    return tok
                return None
            if tok.type == "NEWLINE":
                if not self._inserts_semicolon():
                    continue
                tok.type = "SEMI"
                tok.value = "\n"
            self._last = tok
            return tok

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens

    def raw_tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize without semicolon insertion, keeping NEWLINE tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.lexer.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
