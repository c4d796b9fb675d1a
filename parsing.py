"""
UPL Programming Language Parser
pyparsing-driven tokenizer feeding a Pratt (top-down operator precedence) parser.
Structural errors are collected, never raised, so one pass reports them all.
"""

import functools
import logging
import re
from enum import IntEnum
from typing import Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from pyparsing import ParserElement, QuotedString, Regex, col, lineno, one_of

from ast_nodes import (
    ArrayLiteral, Block, BooleanLiteral, CallExpr, Expression, ExpressionStatement,
    FunctionLiteral, HashLiteral, Identifier, IfExpr, IndexExpr, InfixExpr,
    IntegerLiteral, Let, Node, PrefixExpr, Program, Return, Statement, StringLiteral,
)
from error_handling import ParseError, UPLParseError
from tokens import SYMBOLS, Token, TokenKind, lookup_identifier
from utilities import INT64_MAX


logger = logging.getLogger(__name__)


# ============================================================================
# TOKENIZER
# ============================================================================

class UPLTokenizer:
    """UPL tokenizer built from pyparsing elements"""

    def __init__(self, filename: str = "<input>"):
        self.filename = filename
        self._setup_token_patterns()

    def _setup_token_patterns(self):
        """Setup the token patterns, tried in priority order"""

        # String literals may span lines and escape their closing quote
        string_literal = QuotedString('"', esc_char='\\', multiline=True)
        string_literal.set_parse_action(self._token_action(lambda text: TokenKind.STRING))

        # Integers allow '_' as a digit separator (100_000)
        integer = Regex(r'[0-9][0-9_]*')
        integer.set_parse_action(self._token_action(lambda text: TokenKind.INTEGER))

        identifier = Regex(r'[A-Za-z_][A-Za-z0-9_]*')
        identifier.set_parse_action(self._token_action(lookup_identifier))

        # one_of matches longest first, so '==' wins over '='
        symbol = one_of(list(SYMBOLS))
        symbol.set_parse_action(self._token_action(SYMBOLS.__getitem__))

        # Any character pyparsing does not skip as whitespace is surfaced to the parser
        illegal = Regex(r'.', re.DOTALL)
        illegal.set_parse_action(self._token_action(lambda text: TokenKind.ILLEGAL))

        self.token_pattern: ParserElement = (
            string_literal | integer | identifier | symbol | illegal
        ).parse_with_tabs()

    @staticmethod
    def _token_action(classify: Callable[[str], TokenKind]):
        def action(source: str, loc: int, toks):
            text = toks[0]
            return Token(classify(text), text, lineno(loc, source), col(loc, source))
        return action

    def tokens(self, text: str) -> Iterator[Token]:
        """Lazily yield the tokens of text, ending with exactly one EOF token"""
        for toks, _start, _end in self.token_pattern.scan_string(text):
            yield toks[0]

        last_newline = text.rfind('\n')
        yield Token(TokenKind.EOF, "", text.count('\n') + 1, len(text) - last_newline)

    def tokenize(self, text: str) -> List[Token]:
        """Tokenize a whole source text"""
        return list(self.tokens(text))


class TokenStream:
    """Pull-based token source; keeps returning EOF once exhausted"""

    def __init__(self, tokens: Iterable[Token]):
        self._tokens = iter(tokens)
        self._eof: Optional[Token] = None

    def next_token(self) -> Token:
        if self._eof is not None:
            return self._eof

        token = next(self._tokens, None)
        if token is None:
            token = Token(TokenKind.EOF, "")
        if token.kind is TokenKind.EOF:
            self._eof = token
        return token


# ============================================================================
# PRATT PARSER
# ============================================================================

class Precedence(IntEnum):
    LOWEST = 1
    EQUALS = 2       # == !=
    LESSGREATER = 3  # < >
    SUM = 4          # + -
    PRODUCT = 5      # * /
    PREFIX = 6       # -x !x
    CALL = 7         # f(x)
    INDEX = 8        # a[i]


PRECEDENCES: Dict[TokenKind, Precedence] = {
    TokenKind.EQ: Precedence.EQUALS,
    TokenKind.NEQ: Precedence.EQUALS,
    TokenKind.LT: Precedence.LESSGREATER,
    TokenKind.GT: Precedence.LESSGREATER,
    TokenKind.PLUS: Precedence.SUM,
    TokenKind.MINUS: Precedence.SUM,
    TokenKind.SLASH: Precedence.PRODUCT,
    TokenKind.ASTERISK: Precedence.PRODUCT,
    TokenKind.LPAREN: Precedence.CALL,
    TokenKind.LBRACKET: Precedence.INDEX,
}

PrefixParseFn = Callable[[], Optional[Expression]]
InfixParseFn = Callable[[Expression], Optional[Expression]]


def traced(rule: str):
    """Log BEGIN/END of a parse rule when the parser runs in debug mode"""
    def decorate(method):
        @functools.wraps(method)
        def wrapper(self, *args):
            if not self.debug:
                return method(self, *args)
            self._trace_level += 1
            self._trace_print(f"BEGIN {rule}")
            try:
                return method(self, *args)
            finally:
                self._trace_print(f"END {rule}")
                self._trace_level -= 1
        return wrapper
    return decorate


class Parser:
    """
    Pratt parser over a TokenStream.

    Every parse function is entered with its first token as current_token and
    returns with the last token of its construct as current_token. A parse
    function that hits an error records it and returns None.
    """

    def __init__(self, stream: TokenStream, debug: bool = False):
        self.stream = stream
        self.debug = debug
        self.errors: List[ParseError] = []
        self._trace_level = 0

        # Open '{' constructs, innermost last; tells a block's '}' from a hash's
        self._brace_owners: List[type] = []
        self._closing_brace: Optional[Token] = None

        self.current_token = Token(TokenKind.EOF, "")
        self.peek_token = Token(TokenKind.EOF, "")

        self.prefix_parse_fns: Dict[TokenKind, PrefixParseFn] = {}
        self.infix_parse_fns: Dict[TokenKind, InfixParseFn] = {}

        self._register_prefix(TokenKind.IDENTIFIER, self.parse_identifier)
        self._register_prefix(TokenKind.INTEGER, self.parse_integer_literal)
        self._register_prefix(TokenKind.STRING, self.parse_string_literal)
        self._register_prefix(TokenKind.TRUE, self.parse_boolean)
        self._register_prefix(TokenKind.FALSE, self.parse_boolean)
        self._register_prefix(TokenKind.BANG, self.parse_prefix_expression)
        self._register_prefix(TokenKind.MINUS, self.parse_prefix_expression)
        self._register_prefix(TokenKind.LPAREN, self.parse_grouped_expression)
        self._register_prefix(TokenKind.LBRACKET, self.parse_array_literal)
        self._register_prefix(TokenKind.LBRACE, self.parse_hash_literal)
        self._register_prefix(TokenKind.IF, self.parse_if_expression)
        self._register_prefix(TokenKind.FUNCTION, self.parse_function_literal)

        for kind in (TokenKind.EQ, TokenKind.NEQ, TokenKind.LT, TokenKind.GT,
                     TokenKind.PLUS, TokenKind.MINUS, TokenKind.ASTERISK, TokenKind.SLASH):
            self._register_infix(kind, self.parse_infix_expression)
        self._register_infix(TokenKind.LPAREN, self.parse_call_expression)
        self._register_infix(TokenKind.LBRACKET, self.parse_index_expression)

        # Fill current_token and peek_token
        self.next_token()
        self.next_token()

    def _register_prefix(self, kind: TokenKind, fn: PrefixParseFn) -> None:
        self.prefix_parse_fns[kind] = fn

    def _register_infix(self, kind: TokenKind, fn: InfixParseFn) -> None:
        self.infix_parse_fns[kind] = fn

    def _trace_print(self, message: str) -> None:
        logger.debug("%s%s", "\t" * (self._trace_level - 1), message)

    # ------------------------------------------------------------------------
    # Token cursor
    # ------------------------------------------------------------------------

    def next_token(self) -> None:
        self.current_token = self.peek_token
        self.peek_token = self.stream.next_token()

    def current_token_is(self, kind: TokenKind) -> bool:
        return self.current_token.kind is kind

    def peek_token_is(self, kind: TokenKind) -> bool:
        return self.peek_token.kind is kind

    def expect_peek(self, kind: TokenKind) -> bool:
        """Advance onto the lookahead if it has the required kind, else record an error"""
        if self.peek_token_is(kind):
            self.next_token()
            return True
        self._peek_error(kind)
        return False

    def peek_precedence(self) -> Precedence:
        return PRECEDENCES.get(self.peek_token.kind, Precedence.LOWEST)

    def current_precedence(self) -> Precedence:
        return PRECEDENCES.get(self.current_token.kind, Precedence.LOWEST)

    def _skip_semicolons(self) -> None:
        while self.peek_token_is(TokenKind.SEMICOLON):
            self.next_token()

    # ------------------------------------------------------------------------
    # Errors
    # ------------------------------------------------------------------------

    def _error(self, message: str, token: Token) -> None:
        self.errors.append(ParseError(message, token.line, token.column))

    def _peek_error(self, expected: TokenKind) -> None:
        self._error(f"expected: {expected}, but got: {self.peek_token.kind}", self.peek_token)

    def _no_prefix_parse_fn_error(self, token: Token) -> None:
        if token.kind is TokenKind.ILLEGAL:
            self._error(f"illegal token: '{token.literal}'", token)
        else:
            self._error(f"no prefix parse function for {token.kind}", token)
        # A '}' where an expression should start closes the enclosing block
        if token.kind is TokenKind.RBRACE and self._brace_owners and self._brace_owners[-1] is Block:
            self._closing_brace = token

    def _synchronize(self) -> None:
        """Skip the rest of a broken statement: up to ';', EOF, or the enclosing block's '}'"""
        while not (self.current_token_is(TokenKind.SEMICOLON)
                   or self.current_token_is(TokenKind.EOF)
                   or self.current_token is self._closing_brace
                   or self.peek_token_is(TokenKind.RBRACE)):
            self.next_token()

    # ------------------------------------------------------------------------
    # Statements
    # ------------------------------------------------------------------------

    def parse_program(self) -> Tuple[Program, List[ParseError]]:
        """Parse the whole stream; always returns a program and the collected errors"""
        statements = self._parse_statements_until(TokenKind.EOF)
        return Program(tuple(statements)), list(self.errors)

    def _parse_statements_until(self, end: TokenKind) -> List[Statement]:
        statements: List[Statement] = []
        while not self.current_token_is(end) and not self.current_token_is(TokenKind.EOF):
            error_count = len(self.errors)
            stmt = self.parse_statement()
            if stmt is not None and len(self.errors) == error_count:
                statements.append(stmt)
            else:
                self._synchronize()
                if end is TokenKind.RBRACE and self.current_token is self._closing_brace:
                    break
            self.next_token()
        return statements

    def parse_statement(self) -> Optional[Statement]:
        kind = self.current_token.kind
        if kind is TokenKind.LET:
            return self.parse_let_statement()
        if kind is TokenKind.RETURN:
            return self.parse_return_statement()
        return self.parse_expression_statement()

    @traced("let statement")
    def parse_let_statement(self) -> Optional[Let]:
        token = self.current_token

        if not self.expect_peek(TokenKind.IDENTIFIER):
            return None
        name = Identifier(self.current_token.literal, self.current_token)

        if not self.expect_peek(TokenKind.ASSIGN):
            return None

        # Move past '=' onto the value
        self.next_token()
        value = self.parse_expression(Precedence.LOWEST)
        if value is None:
            return None

        self._skip_semicolons()
        return Let(name, value, token)

    @traced("return statement")
    def parse_return_statement(self) -> Optional[Return]:
        token = self.current_token

        self.next_token()
        value = self.parse_expression(Precedence.LOWEST)
        if value is None:
            return None

        self._skip_semicolons()
        return Return(value, token)

    @traced("expression statement")
    def parse_expression_statement(self) -> Optional[ExpressionStatement]:
        token = self.current_token
        expr = self.parse_expression(Precedence.LOWEST)
        if expr is None:
            return None

        # Semicolons are optional so REPL lines like "5 + 5" work
        self._skip_semicolons()
        return ExpressionStatement(expr, token)

    @traced("block statement")
    def parse_block_statement(self) -> Optional[Block]:
        token = self.current_token
        self.next_token()
        self._brace_owners.append(Block)
        try:
            statements = self._parse_statements_until(TokenKind.RBRACE)
        finally:
            self._brace_owners.pop()
        if not self.current_token_is(TokenKind.RBRACE):
            self._error(f"expected: {TokenKind.RBRACE}, but got: {self.current_token.kind}",
                        self.current_token)
            return None
        if self.current_token is self._closing_brace:
            self._closing_brace = None
        return Block(tuple(statements), token)

    # ------------------------------------------------------------------------
    # Expressions
    # ------------------------------------------------------------------------

    @traced("expression")
    def parse_expression(self, precedence: Precedence) -> Optional[Expression]:
        prefix = self.prefix_parse_fns.get(self.current_token.kind)
        if prefix is None:
            self._no_prefix_parse_fn_error(self.current_token)
            return None
        left = prefix()

        # Fold operators while they bind tighter than the caller's precedence
        while (left is not None
               and not self.peek_token_is(TokenKind.SEMICOLON)
               and precedence < self.peek_precedence()):
            infix = self.infix_parse_fns.get(self.peek_token.kind)
            if infix is None:
                return left
            self.next_token()
            left = infix(left)
        return left

    @traced("identifier")
    def parse_identifier(self) -> Expression:
        return Identifier(self.current_token.literal, self.current_token)

    @traced("integer")
    def parse_integer_literal(self) -> Optional[Expression]:
        token = self.current_token
        try:
            value = int(token.literal)
        except ValueError:
            value = None
        if value is None or value > INT64_MAX:
            self._error(f'could not parse "{token.literal}" as integer', token)
            return None
        return IntegerLiteral(value, token)

    @traced("string")
    def parse_string_literal(self) -> Expression:
        return StringLiteral(self.current_token.literal, self.current_token)

    @traced("boolean")
    def parse_boolean(self) -> Expression:
        return BooleanLiteral(self.current_token_is(TokenKind.TRUE), self.current_token)

    @traced("prefix expression")
    def parse_prefix_expression(self) -> Optional[Expression]:
        token = self.current_token

        # The operator alone is not an expression; move onto its operand
        self.next_token()
        right = self.parse_expression(Precedence.PREFIX)
        if right is None:
            return None
        return PrefixExpr(token.literal, right, token)

    @traced("infix expression")
    def parse_infix_expression(self, left: Expression) -> Optional[Expression]:
        token = self.current_token
        precedence = self.current_precedence()

        self.next_token()
        right = self.parse_expression(precedence)
        if right is None:
            return None
        return InfixExpr(token.literal, left, right, token)

    @traced("grouped expression")
    def parse_grouped_expression(self) -> Optional[Expression]:
        self.next_token()
        expr = self.parse_expression(Precedence.LOWEST)
        if expr is None or not self.expect_peek(TokenKind.RPAREN):
            return None
        return expr

    @traced("array literal")
    def parse_array_literal(self) -> Optional[Expression]:
        token = self.current_token
        elements = self._parse_expression_list(TokenKind.RBRACKET)
        if elements is None:
            return None
        return ArrayLiteral(elements, token)

    @traced("hash literal")
    def parse_hash_literal(self) -> Optional[Expression]:
        self._brace_owners.append(HashLiteral)
        try:
            return self._parse_hash_pairs()
        finally:
            self._brace_owners.pop()

    def _parse_hash_pairs(self) -> Optional[Expression]:
        token = self.current_token
        pairs = []

        while not self.peek_token_is(TokenKind.RBRACE):
            self.next_token()
            key = self.parse_expression(Precedence.LOWEST)
            if key is None or not self.expect_peek(TokenKind.COLON):
                return None

            self.next_token()
            value = self.parse_expression(Precedence.LOWEST)
            if value is None:
                return None
            pairs.append((key, value))

            if not self.peek_token_is(TokenKind.RBRACE) and not self.expect_peek(TokenKind.COMMA):
                return None

        if not self.expect_peek(TokenKind.RBRACE):
            return None
        return HashLiteral(tuple(pairs), token)

    @traced("if expression")
    def parse_if_expression(self) -> Optional[Expression]:
        token = self.current_token
        if not self.expect_peek(TokenKind.LPAREN):
            return None

        self.next_token()
        condition = self.parse_expression(Precedence.LOWEST)
        if condition is None or not self.expect_peek(TokenKind.RPAREN):
            return None

        if not self.expect_peek(TokenKind.LBRACE):
            return None
        consequence = self.parse_block_statement()
        if consequence is None:
            return None

        alternative = None
        if self.peek_token_is(TokenKind.ELSE):
            self.next_token()
            if not self.expect_peek(TokenKind.LBRACE):
                return None
            alternative = self.parse_block_statement()
            if alternative is None:
                return None

        return IfExpr(condition, consequence, alternative, token)

    @traced("function literal")
    def parse_function_literal(self) -> Optional[Expression]:
        token = self.current_token
        if not self.expect_peek(TokenKind.LPAREN):
            return None

        params = self._parse_function_params()
        if params is None or not self.expect_peek(TokenKind.LBRACE):
            return None

        body = self.parse_block_statement()
        if body is None:
            return None
        return FunctionLiteral(params, body, token)

    def _parse_function_params(self) -> Optional[Tuple[Identifier, ...]]:
        if self.peek_token_is(TokenKind.RPAREN):
            self.next_token()
            return ()

        params = []
        if not self.expect_peek(TokenKind.IDENTIFIER):
            return None
        params.append(Identifier(self.current_token.literal, self.current_token))

        while self.peek_token_is(TokenKind.COMMA):
            self.next_token()
            if not self.expect_peek(TokenKind.IDENTIFIER):
                return None
            params.append(Identifier(self.current_token.literal, self.current_token))

        if not self.expect_peek(TokenKind.RPAREN):
            return None
        return tuple(params)

    @traced("call expression")
    def parse_call_expression(self, callee: Expression) -> Optional[Expression]:
        token = self.current_token
        args = self._parse_expression_list(TokenKind.RPAREN)
        if args is None:
            return None
        return CallExpr(callee, args, token)

    @traced("index expression")
    def parse_index_expression(self, collection: Expression) -> Optional[Expression]:
        token = self.current_token

        self.next_token()
        index = self.parse_expression(Precedence.LOWEST)
        if index is None or not self.expect_peek(TokenKind.RBRACKET):
            return None
        return IndexExpr(collection, index, token)

    def _parse_expression_list(self, end: TokenKind) -> Optional[Tuple[Expression, ...]]:
        """Comma separated expressions up to end; None on error, () when empty"""
        if self.peek_token_is(end):
            self.next_token()
            return ()

        self.next_token()
        first = self.parse_expression(Precedence.LOWEST)
        if first is None:
            return None
        items = [first]

        while self.peek_token_is(TokenKind.COMMA):
            self.next_token()
            self.next_token()
            item = self.parse_expression(Precedence.LOWEST)
            if item is None:
                return None
            items.append(item)

        if not self.expect_peek(end):
            return None
        return tuple(items)


# ============================================================================
# FRONT END
# ============================================================================

class UPLParser:
    """Main UPL parser combining tokenizer and Pratt parser"""

    def __init__(self, debug: bool = False):
        self.debug = debug

    def parse_string(self, text: str, filename: str = "<input>") -> Tuple[Program, List[ParseError]]:
        """Parse UPL source code from string"""
        stream = TokenStream(UPLTokenizer(filename).tokens(text))
        return Parser(stream, debug=self.debug).parse_program()

    def parse_file(self, filepath: str) -> Program:
        """Parse a UPL source file, raising UPLParseError if it is unreadable or malformed"""
        try:
            with open(filepath, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            raise UPLParseError(f"File not found: {filepath}", filename=filepath)
        except UnicodeDecodeError as e:
            raise UPLParseError(f"Cannot decode file {filepath}: {e}", filename=filepath)

        program, errors = self.parse_string(content, filepath)
        if errors:
            raise UPLParseError(f"Cannot parse {filepath}", errors, filepath, content)
        return program

    def tokenize(self, text: str, filename: str = "<input>") -> List[Token]:
        """Tokenize UPL source code"""
        return UPLTokenizer(filename).tokenize(text)


# Factory functions for creating parsers
def create_parser(debug: bool = False) -> UPLParser:
    """Create a UPL parser"""
    return UPLParser(debug=debug)


def create_debug_parser() -> UPLParser:
    """Create a UPL parser that traces every parse rule"""
    return UPLParser(debug=True)


def pretty_print_ast(node: Node, indent: int = 0) -> str:
    """Pretty print an AST node for debugging"""
    children: List[Node] = []
    scalars: List[str] = []

    for name, value in vars(node).items():
        if name == 'token':
            continue
        if isinstance(value, Node):
            children.append(value)
        elif isinstance(value, tuple):
            for item in value:
                # Hash pairs are (key, value) tuples
                children.extend(item if isinstance(item, tuple) else (item,))
        elif value is not None:
            scalars.append(repr(value))

    result = "  " * indent + type(node).__name__
    if scalars:
        result += f"({', '.join(scalars)})"
    result += "\n"

    for child in children:
        result += pretty_print_ast(child, indent + 1)

    return result
