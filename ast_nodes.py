"""
UPL abstract syntax tree
Immutable node shapes produced once per parse and consumed by the evaluator.
The string form of every node is its canonical, fully parenthesized rendering.
"""

from dataclasses import dataclass, field
from typing import Optional, Tuple

from tokens import Token


class Node:
    """Common base of every AST node"""
    token: Optional[Token] = None

    def token_literal(self) -> str:
        return self.token.literal if self.token is not None else ""


class Statement(Node):
    """Marker base for statements"""


class Expression(Node):
    """Marker base for expressions"""


def _source_token():
    return field(default=None, compare=False, repr=False)


# ============================================================================
# ROOT
# ============================================================================

@dataclass(frozen=True)
class Program(Node):
    statements: Tuple[Statement, ...] = ()

    def token_literal(self) -> str:
        if not self.statements:
            return ""
        return self.statements[0].token_literal()

    def __str__(self) -> str:
        return "".join(str(stmt) for stmt in self.statements)


# ============================================================================
# EXPRESSIONS
# ============================================================================

@dataclass(frozen=True)
class Identifier(Expression):
    name: str
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return self.name


@dataclass(frozen=True)
class IntegerLiteral(Expression):
    value: int
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class StringLiteral(Expression):
    value: str
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class BooleanLiteral(Expression):
    value: bool
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return "true" if self.value else "false"


@dataclass(frozen=True)
class ArrayLiteral(Expression):
    elements: Tuple[Expression, ...] = ()
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return f"[{', '.join(str(e) for e in self.elements)}]"


@dataclass(frozen=True)
class HashLiteral(Expression):
    """Key/value pairs in source order"""
    pairs: Tuple[Tuple[Expression, Expression], ...] = ()
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return "{" + ", ".join(f"{k}: {v}" for k, v in self.pairs) + "}"


@dataclass(frozen=True)
class PrefixExpr(Expression):
    op: str
    right: Expression
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return f"({self.op}{self.right})"


@dataclass(frozen=True)
class InfixExpr(Expression):
    op: str
    left: Expression
    right: Expression
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return f"({self.left} {self.op} {self.right})"


@dataclass(frozen=True)
class FunctionLiteral(Expression):
    params: Tuple[Identifier, ...]
    body: "Block"
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        params = ", ".join(str(p) for p in self.params)
        return f"fn({params}) {self.body}"


@dataclass(frozen=True)
class CallExpr(Expression):
    callee: Expression
    args: Tuple[Expression, ...] = ()
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return f"{self.callee}({', '.join(str(a) for a in self.args)})"


@dataclass(frozen=True)
class IndexExpr(Expression):
    collection: Expression
    index: Expression
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return f"({self.collection}[{self.index}])"


# ============================================================================
# STATEMENTS
# ============================================================================

@dataclass(frozen=True)
class Let(Statement):
    name: Identifier
    value: Expression
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return f"let {self.name} = {self.value};"


@dataclass(frozen=True)
class Return(Statement):
    value: Expression
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return f"return {self.value};"


@dataclass(frozen=True)
class ExpressionStatement(Statement):
    expr: Expression
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return str(self.expr)


@dataclass(frozen=True)
class Block(Statement):
    statements: Tuple[Statement, ...] = ()
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        return "".join(str(stmt) for stmt in self.statements)


# IfExpr refers to Block, so it is declared last
@dataclass(frozen=True)
class IfExpr(Expression):
    condition: Expression
    consequence: Block
    alternative: Optional[Block] = None
    token: Optional[Token] = _source_token()

    def __str__(self) -> str:
        result = f"if {self.condition} {self.consequence}"
        if self.alternative is not None:
            result += f" else {self.alternative}"
        return result
