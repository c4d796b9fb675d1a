"""
UPL token kinds and the token value type shared by the tokenizer and parser
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict


class TokenKind(Enum):
    """Closed set of lexical categories"""
    ILLEGAL = "ILLEGAL"
    EOF = "EOF"

    # Identifiers + literals
    IDENTIFIER = "IDENTIFIER"
    INTEGER = "INTEGER"
    STRING = "STRING"

    # Operators
    ASSIGN = "="
    PLUS = "+"
    MINUS = "-"
    BANG = "!"
    ASTERISK = "*"
    SLASH = "/"
    LT = "<"
    GT = ">"
    EQ = "=="
    NEQ = "!="

    # Delimiters
    COMMA = ","
    SEMICOLON = ";"
    COLON = ":"
    LPAREN = "("
    RPAREN = ")"
    LBRACE = "{"
    RBRACE = "}"
    LBRACKET = "["
    RBRACKET = "]"

    # Keywords
    FUNCTION = "FUNCTION"
    LET = "LET"
    TRUE = "TRUE"
    FALSE = "FALSE"
    IF = "IF"
    ELSE = "ELSE"
    RETURN = "RETURN"

    def __str__(self) -> str:
        return self.value


KEYWORDS: Dict[str, TokenKind] = {
    "fn": TokenKind.FUNCTION,
    "let": TokenKind.LET,
    "true": TokenKind.TRUE,
    "false": TokenKind.FALSE,
    "if": TokenKind.IF,
    "else": TokenKind.ELSE,
    "return": TokenKind.RETURN,
}

# Operator and delimiter spellings, keyed by their literal text
SYMBOLS: Dict[str, TokenKind] = {
    kind.value: kind
    for kind in TokenKind
    if not kind.value.isalpha()
}


def lookup_identifier(literal: str) -> TokenKind:
    """Classify a word as a keyword or a plain identifier"""
    return KEYWORDS.get(literal, TokenKind.IDENTIFIER)


@dataclass(frozen=True)
class Token:
    """UPL token with source position (1-based, 0 when synthesized)"""
    kind: TokenKind
    literal: str
    line: int = 0
    column: int = 0

    def __str__(self) -> str:
        return f"{self.kind}({self.literal})"
