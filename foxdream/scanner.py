"""Scanner for the FoxDream language.

Source text is turned into tokens by an ordered table of regular
expression rules.  At every position the first rule in table order that
matches wins; this is not longest-match, so the table order decides
keyword versus identifier precedence (``and`` must come before ``\\w+``,
``+=`` before ``+``, ``//`` before ``/``).
"""

from __future__ import annotations

import re
from enum import Enum, auto
from typing import Any, List, NamedTuple, Optional, Pattern

import lark

from .errors import ErrorVal, FoxSyntaxError


class Kind(Enum):
    # punctuation
    LPAREN = auto()
    RPAREN = auto()
    LBRACKET = auto()
    RBRACKET = auto()
    COMMA = auto()
    DOT = auto()
    COLON = auto()
    QUESTION = auto()
    SEPARATOR = auto()
    # literals
    NUMBER = auto()
    STRING = auto()
    TRUE = auto()
    FALSE = auto()
    NULL = auto()
    IDENTIFIER = auto()
    # operators
    SIMPLE_ASSIGN = auto()
    COMPLEX_ASSIGN = auto()
    RELATIONAL_OPERATOR = auto()
    EQUALITY_OPERATOR = auto()
    TERM_OPERATOR = auto()
    FACTOR_OPERATOR = auto()
    LOGICAL_AND = auto()
    LOGICAL_OR = auto()
    LOGICAL_NOT = auto()
    # keywords
    AS = auto()
    LOCAL = auto()
    PUBLIC = auto()
    PRIVATE = auto()
    CONST = auto()
    IF = auto()
    THEN = auto()
    ELSE = auto()
    ENDIF = auto()
    RETURN = auto()
    WHILE = auto()
    ENDWHILE = auto()
    ENDDO = auto()
    REPEAT = auto()
    UNTIL = auto()
    PRINT = auto()
    CLASS = auto()
    ENDCLASS = auto()
    THIS = auto()
    CREATEOBJECT = auto()
    FOR = auto()
    TO = auto()
    STEP = auto()
    ENDFOR = auto()
    DODEFAULT = auto()
    FUNCTION = auto()
    LPARAMETERS = auto()
    ENDFUNC = auto()
    DO = auto()
    CASE = auto()
    OTHERWISE = auto()
    ENDCASE = auto()
    EXIT = auto()
    LOOP = auto()
    IMPORT = auto()
    MODULE = auto()
    ENDMODULE = auto()
    RELEASE = auto()
    DEFER = auto()
    ENDDEFER = auto()
    # internal
    IGNORE = auto()
    EOF = auto()


class Category(Enum):
    LITERAL = auto()
    IGNORABLE = auto()
    KEYWORD = auto()
    IDENTIFIER = auto()
    ASSIGNMENT = auto()
    GENERIC = auto()
    UNARY = auto()
    ASSIGN = auto()
    LESS = auto()
    LESS_EQ = auto()
    GREATER = auto()
    GREATER_EQ = auto()
    EQUAL = auto()
    BANG = auto()
    NOT_EQ = auto()
    PLUS = auto()
    MINUS = auto()
    MUL = auto()
    DIV = auto()


class Token(lark.Token):
    """A lark token that also carries the FoxDream kind, category and literal.

    The lark ``type`` is the kind's name and the string value is the lexeme,
    so tokens compare and hash like their source text.  Tokens for separators
    and end of input have an empty lexeme and are therefore falsy.
    """

    def __new__(cls, kind: Kind, category: Category, lexeme: str, literal: Any = None,
                start_pos: Optional[int] = None, line: int = 0, column: int = 0):
        inst = super().__new__(cls, kind.name, lexeme, start_pos, line, column)
        inst.kind = kind
        inst.category = category
        inst.literal = literal
        return inst

    @property
    def lexeme(self) -> str:
        return str(self)


class Rule(NamedTuple):
    pattern: Pattern
    kind: Kind
    category: Category


def _rule(pattern: str, kind: Kind, category: Category = Category.GENERIC) -> Rule:
    return Rule(re.compile(pattern, re.IGNORECASE), kind, category)


def _keyword(word: str, kind: Kind) -> Rule:
    return _rule(word + r'\b', kind, Category.KEYWORD)


RULES: List[Rule] = [
    _rule(r'[ \t\r\f]+', Kind.IGNORE, Category.IGNORABLE),
    _rule(r'//.*', Kind.IGNORE, Category.IGNORABLE),
    _rule(r'/\*[\s\S]*?\*/', Kind.IGNORE, Category.IGNORABLE),
    _rule(r';[ \t\r\f]*\n', Kind.SEPARATOR),
    _rule(r';', Kind.IGNORE, Category.IGNORABLE),
    _rule(r'\n+', Kind.SEPARATOR),
    _rule(r'\d+[_.\d]*', Kind.NUMBER, Category.LITERAL),
    _rule(r'"(?:[^"\\]|\\.)*"', Kind.STRING, Category.LITERAL),
    _rule(r"'(?:[^'\\]|\\.)*'", Kind.STRING, Category.LITERAL),
    _rule(r'`[^`]*`', Kind.STRING, Category.LITERAL),
    _rule(r'[<>]=?', Kind.RELATIONAL_OPERATOR),
    _rule(r'[=!]=', Kind.EQUALITY_OPERATOR),
    _rule(r'\.and\.|and\b', Kind.LOGICAL_AND),
    _rule(r'\.or\.|or\b', Kind.LOGICAL_OR),
    _rule(r'!', Kind.LOGICAL_NOT, Category.UNARY),
    _keyword('as', Kind.AS),
    _keyword('local', Kind.LOCAL),
    _keyword('public', Kind.PUBLIC),
    _keyword('const', Kind.CONST),
    _keyword('if', Kind.IF),
    _keyword('then', Kind.THEN),
    _keyword('else', Kind.ELSE),
    _keyword('endif', Kind.ENDIF),
    _rule(r'\.t\.|\.true\.|true\b', Kind.TRUE, Category.LITERAL),
    _rule(r'\.f\.|\.false\.|false\b', Kind.FALSE, Category.LITERAL),
    _rule(r'\.null\.|null\b', Kind.NULL, Category.LITERAL),
    _keyword('return', Kind.RETURN),
    _keyword('while', Kind.WHILE),
    _keyword('endwhile', Kind.ENDWHILE),
    _keyword('enddo', Kind.ENDDO),
    _keyword('repeat', Kind.REPEAT),
    _keyword('print', Kind.PRINT),
    _keyword('until', Kind.UNTIL),
    _keyword('class', Kind.CLASS),
    _keyword('endclass', Kind.ENDCLASS),
    _keyword('this', Kind.THIS),
    _keyword('createobject', Kind.CREATEOBJECT),
    _keyword('for', Kind.FOR),
    _keyword('to', Kind.TO),
    _keyword('step', Kind.STEP),
    _keyword('endfor', Kind.ENDFOR),
    _keyword('dodefault', Kind.DODEFAULT),
    _keyword('function', Kind.FUNCTION),
    _keyword('lparameters', Kind.LPARAMETERS),
    _keyword('endfunc', Kind.ENDFUNC),
    _keyword('do', Kind.DO),
    _keyword('case', Kind.CASE),
    _keyword('otherwise', Kind.OTHERWISE),
    _keyword('endcase', Kind.ENDCASE),
    _keyword('exit', Kind.EXIT),
    _keyword('loop', Kind.LOOP),
    _keyword('private', Kind.PRIVATE),
    _keyword('import', Kind.IMPORT),
    _keyword('module', Kind.MODULE),
    _keyword('endmodule', Kind.ENDMODULE),
    _keyword('release', Kind.RELEASE),
    _keyword('defer', Kind.DEFER),
    _keyword('enddefer', Kind.ENDDEFER),
    _rule(r'=', Kind.SIMPLE_ASSIGN, Category.ASSIGNMENT),
    _rule(r'[+\-*/]=', Kind.COMPLEX_ASSIGN, Category.ASSIGNMENT),
    _rule(r'[+\-]', Kind.TERM_OPERATOR),
    _rule(r'[*/]', Kind.FACTOR_OPERATOR),
    _rule(r'\w+', Kind.IDENTIFIER, Category.IDENTIFIER),
    _rule(r'\(', Kind.LPAREN),
    _rule(r'\)', Kind.RPAREN),
    _rule(r'\[', Kind.LBRACKET),
    _rule(r'\]', Kind.RBRACKET),
    _rule(r',', Kind.COMMA),
    _rule(r'\.', Kind.DOT),
    _rule(r':', Kind.COLON),
    _rule(r'\?', Kind.QUESTION),
]

# Operator lexemes also carry a semantic category used by the evaluator.
OPERATOR_CATEGORIES = {
    '+': Category.PLUS, '+=': Category.PLUS,
    '-': Category.MINUS, '-=': Category.MINUS,
    '*': Category.MUL, '*=': Category.MUL,
    '/': Category.DIV, '/=': Category.DIV,
    '<': Category.LESS, '<=': Category.LESS_EQ,
    '>': Category.GREATER, '>=': Category.GREATER_EQ,
    '==': Category.EQUAL, '!=': Category.NOT_EQ,
    '!': Category.BANG,
}

OPERATOR_KINDS = {
    Kind.COMPLEX_ASSIGN, Kind.TERM_OPERATOR, Kind.FACTOR_OPERATOR,
    Kind.RELATIONAL_OPERATOR, Kind.EQUALITY_OPERATOR, Kind.LOGICAL_NOT,
}

ESCAPES = {'r': '\r', 'n': '\n', 't': '\t', '"': '"', "'": "'"}
ESCAPE_RE = re.compile(r'\\([rnt"\'])')


def decode_string(lexeme: str) -> str:
    """Strip the quotes from a string lexeme and decode its escapes."""
    content = lexeme[1:-1]
    if lexeme.startswith('`'):
        return content
    return ESCAPE_RE.sub(lambda m: ESCAPES[m.group(1)], content)


class Scanner:
    """Converts FoxDream source text into a list of tokens.

    Unknown characters and malformed numbers are recorded in ``errors``
    and skipped so that scanning always reaches the end of the input.
    """

    def __init__(self, source: str, first_line: int = 1):
        if not source.endswith('\n'):
            source += '\n'
        self.source = source
        self.tokens: List[Token] = []
        self.errors: List[ErrorVal] = []
        self.pos = 0
        self.line = first_line
        self.column = 1

    def scan_tokens(self) -> List[Token]:
        while self.pos < len(self.source):
            self.scan_token()
        self.tokens.append(Token(Kind.EOF, Category.GENERIC, '', None, self.pos, self.line, self.column))
        return self.tokens

    def scan_token(self):
        for rule in RULES:
            match = rule.pattern.match(self.source, self.pos)
            if match is None or match.end() == self.pos:
                continue
            self.emit(rule, match.group())
            return
        self.errors.append(ErrorVal('SyntaxError', f"Unknown character: {self.source[self.pos]!r}",
                                    self.line, self.column, self.source[self.pos]))
        self.advance(self.source[self.pos])

    def emit(self, rule: Rule, lexeme: str):
        start_pos, line, column = self.pos, self.line, self.column
        self.advance(lexeme)
        kind = rule.kind
        if kind is Kind.IGNORE:
            return
        if kind is Kind.SEPARATOR:
            # no leading separator, and runs of separators collapse to one
            if not self.tokens or self.tokens[-1].kind is Kind.SEPARATOR:
                return
            self.tokens.append(Token(kind, rule.category, '', None, start_pos, line, column))
            return
        category = rule.category
        if kind in OPERATOR_KINDS:
            category = OPERATOR_CATEGORIES.get(lexeme, category)
        literal = self.literal_for(kind, lexeme, line, column)
        self.tokens.append(Token(kind, category, lexeme, literal, start_pos, line, column))

    def literal_for(self, kind: Kind, lexeme: str, line: int, column: int) -> Any:
        if kind is Kind.NUMBER:
            try:
                return float(lexeme.replace('_', ''))
            except ValueError:
                self.errors.append(ErrorVal('SyntaxError', f"Invalid number literal: {lexeme}",
                                            line, column, lexeme))
                return 0.0
        if kind is Kind.STRING:
            return decode_string(lexeme)
        if kind is Kind.TRUE:
            return True
        if kind is Kind.FALSE:
            return False
        if kind is Kind.NULL:
            return None
        return lexeme

    def advance(self, text: str):
        self.pos += len(text)
        newlines = text.count('\n')
        if newlines:
            self.line += newlines
            self.column = len(text) - text.rindex('\n')
        else:
            self.column += len(text)


def scan(source: str) -> List[Token]:
    """Scan ``source`` and return its tokens, raising if any were malformed."""
    scanner = Scanner(source)
    tokens = scanner.scan_tokens()
    if scanner.errors:
        raise FoxSyntaxError(scanner.errors)
    return tokens
