"""
UPL runtime object model
Values produced by the evaluator, the shared singletons and the
lexical environment closures capture
"""

from dataclasses import dataclass, field
from typing import Callable, Dict, Optional, Tuple

from ast_nodes import Block, Identifier


# ============================================================================
# BASE
# ============================================================================

class Object:
  """Common base of every runtime value"""
  type_name = "object"

  def inspect(self) -> str:
    raise NotImplementedError

  def __str__(self) -> str:
    return self.inspect()


@dataclass(frozen=True)
class HashKey:
  """Identity of a hashable value inside a Hash"""
  type_name: str
  value: object


class Hashable:
  """Mixin for values usable as hash keys"""

  def hash_key(self) -> HashKey:
    return HashKey(self.type_name, self.value)


# ============================================================================
# SCALARS
# ============================================================================

@dataclass(frozen=True)
class Integer(Hashable, Object):
  value: int
  type_name = "int"

  def inspect(self) -> str:
    return str(self.value)


@dataclass(frozen=True, eq=False)
class Boolean(Hashable, Object):
  """Only TRUE and FALSE exist; compare them by identity"""
  value: bool
  type_name = "bool"

  def inspect(self) -> str:
    return "true" if self.value else "false"


@dataclass(frozen=True)
class String(Hashable, Object):
  value: str
  type_name = "string"

  def inspect(self) -> str:
    return self.value


class Null(Object):
  type_name = "null"

  def inspect(self) -> str:
    return "null"

  def __repr__(self) -> str:
    return "NULL"


TRUE = Boolean(True)
FALSE = Boolean(False)
NULL = Null()


def native_bool(value: bool) -> Boolean:
  """Map a host boolean onto the shared singletons"""
  return TRUE if value else FALSE


# ============================================================================
# COMPOSITES
# ============================================================================

@dataclass(frozen=True)
class Array(Object):
  elements: Tuple[Object, ...] = ()
  type_name = "array"

  def inspect(self) -> str:
    return f"[{', '.join(e.inspect() for e in self.elements)}]"


@dataclass(frozen=True)
class HashPair:
  key: Object
  value: Object


@dataclass(frozen=True, eq=False)
class Hash(Object):
  pairs: Dict[HashKey, HashPair] = field(default_factory=dict)
  type_name = "hash"

  def inspect(self) -> str:
    # Rendered sorted so output does not depend on insertion order
    items = sorted(f"{p.key.inspect()}: {p.value.inspect()}" for p in self.pairs.values())
    return "{" + ", ".join(items) + "}"


# ============================================================================
# CONTROL VALUES
# ============================================================================

@dataclass(frozen=True)
class ReturnValue(Object):
  """Carries a returned value up to the nearest function call or program"""
  value: Object
  type_name = "return value"

  def inspect(self) -> str:
    return self.value.inspect()


@dataclass(frozen=True)
class Error(Object):
  """A program mistake; propagates until it reaches the top"""
  message: str
  type_name = "error"

  def inspect(self) -> str:
    return f"Error: {self.message}"


# ============================================================================
# CALLABLES
# ============================================================================

@dataclass(eq=False)
class Function(Object):
  """A closure: parameters, body and the environment it was defined in"""
  params: Tuple[Identifier, ...]
  body: Block
  env: "Environment" = field(repr=False)
  type_name = "function"

  def inspect(self) -> str:
    params = ", ".join(p.name for p in self.params)
    return f"fn({params}) {{\n{self.body}\n}}"


@dataclass(frozen=True, eq=False)
class Builtin(Object):
  """Host function exposed to programs"""
  name: str
  fn: Callable[..., Object] = field(repr=False)
  type_name = "builtin"

  def inspect(self) -> str:
    return "builtin function"


# ============================================================================
# ENVIRONMENT
# ============================================================================

class Environment:
  """
  Name -> Object bindings with an optional enclosing environment.
  Closures hold a reference to the environment they were created in, so
  later bindings in that environment are visible to them.
  """

  def __init__(self, outer: Optional["Environment"] = None):
    self.bindings: Dict[str, Object] = {}
    self.outer = outer

  def get(self, name: str) -> Optional[Object]:
    """Look a name up through the chain of enclosing environments"""
    env = self
    while env is not None:
      if name in env.bindings:
        return env.bindings[name]
      env = env.outer
    return None

  def set(self, name: str, value: Object) -> Object:
    """Bind a name in this environment only; returns the value"""
    self.bindings[name] = value
    return value

  def child(self) -> "Environment":
    return Environment(outer=self)

  def __contains__(self, name: str) -> bool:
    return self.get(name) is not None

  def __repr__(self) -> str:
    depth = 0
    env = self.outer
    while env is not None:
      depth += 1
      env = env.outer
    return f"Environment({len(self.bindings)} bindings, depth={depth})"
