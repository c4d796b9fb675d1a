"""
UPL Interpreter - tree-walking evaluator
Program mistakes are returned as Error objects and travel up the tree;
host exceptions are reserved for faults in the interpreter itself
"""

import logging
from typing import List, Optional, Sequence, Tuple

from ast_nodes import (
  ArrayLiteral, Block, BooleanLiteral, CallExpr, ExpressionStatement, FunctionLiteral,
  HashLiteral, Identifier, IfExpr, IndexExpr, InfixExpr, IntegerLiteral, Let, Node,
  PrefixExpr, Program, Return, StringLiteral,
)
from error_handling import ParseError, UPLRuntimeError
from objects import (
  FALSE, NULL, TRUE, Array, Builtin, Environment, Error, Function, Hash, Hashable,
  HashPair, Integer, Object, ReturnValue, String, native_bool,
)
from parsing import create_parser
from stdlib import get_builtin_function
from utilities import INTEGER_OPERATORS, is_error, new_error, operation_error, wrap_int64


logger = logging.getLogger(__name__)


# ============================================================================
# DISPATCH
# ============================================================================

def eval_node(node: Node, env: Environment, debug: bool = False) -> Optional[Object]:
  """
  Evaluate an AST node in env.
  Returns None only for nodes that produce no value (let statements and
  programs without a valued statement).
  """
  if debug:
    logger.debug("Evaluating: %s (%s)", type(node).__name__, node.token_literal())

  # Statements
  if isinstance(node, Program):
    return eval_program(node, env, debug)
  elif isinstance(node, ExpressionStatement):
    return eval_node(node.expr, env, debug)
  elif isinstance(node, Block):
    return eval_block(node, env, debug)
  elif isinstance(node, Let):
    return eval_let(node, env, debug)
  elif isinstance(node, Return):
    return eval_return(node, env, debug)

  # Literals
  elif isinstance(node, IntegerLiteral):
    return Integer(node.value)
  elif isinstance(node, StringLiteral):
    return String(node.value)
  elif isinstance(node, BooleanLiteral):
    return native_bool(node.value)
  elif isinstance(node, ArrayLiteral):
    return eval_array_literal(node, env, debug)
  elif isinstance(node, HashLiteral):
    return eval_hash_literal(node, env, debug)
  elif isinstance(node, FunctionLiteral):
    return Function(node.params, node.body, env)

  # Expressions
  elif isinstance(node, Identifier):
    return eval_identifier(node, env, debug)
  elif isinstance(node, PrefixExpr):
    return eval_prefix_expression(node, env, debug)
  elif isinstance(node, InfixExpr):
    return eval_infix_expression(node, env, debug)
  elif isinstance(node, IfExpr):
    return eval_if_expression(node, env, debug)
  elif isinstance(node, CallExpr):
    return eval_call_expression(node, env, debug)
  elif isinstance(node, IndexExpr):
    return eval_index_expression(node, env, debug)
  else:
    raise UPLRuntimeError(f"Unknown node type: {type(node).__name__}")


# ============================================================================
# STATEMENTS
# ============================================================================

def eval_program(program: Program, env: Environment, debug: bool = False) -> Optional[Object]:
  """Evaluate top-level statements; a return ends the program with its payload"""
  result = None
  for stmt in program.statements:
    result = eval_node(stmt, env, debug)
    if isinstance(result, ReturnValue):
      return result.value
    if is_error(result):
      return result
  return result


def eval_block(block: Block, env: Environment, debug: bool = False) -> Object:
  """Evaluate a block; returns and errors are handed up still wrapped"""
  result = NULL
  for stmt in block.statements:
    value = eval_node(stmt, env, debug)
    if isinstance(value, (ReturnValue, Error)):
      return value
    result = value if value is not None else NULL
  return result


def eval_let(node: Let, env: Environment, debug: bool = False) -> Optional[Object]:
  value = eval_node(node.value, env, debug)
  if is_error(value):
    return value
  env.set(node.name.name, value)
  return None


def eval_return(node: Return, env: Environment, debug: bool = False) -> Object:
  value = eval_node(node.value, env, debug)
  if is_error(value):
    return value
  return ReturnValue(value)


# ============================================================================
# COLLECTIONS
# ============================================================================

def eval_expressions(exprs: Sequence[Node], env: Environment,
                     debug: bool = False) -> Tuple[List[Object], Optional[Error]]:
  """Evaluate left to right, stopping at the first error"""
  values = []
  for expr in exprs:
    value = eval_node(expr, env, debug)
    if is_error(value):
      return values, value
    values.append(value)
  return values, None


def eval_array_literal(node: ArrayLiteral, env: Environment, debug: bool = False) -> Object:
  elements, error = eval_expressions(node.elements, env, debug)
  if error is not None:
    return error
  return Array(tuple(elements))


def eval_hash_literal(node: HashLiteral, env: Environment, debug: bool = False) -> Object:
  pairs = {}
  for key_node, value_node in node.pairs:
    key = eval_node(key_node, env, debug)
    if is_error(key):
      return key
    if not isinstance(key, Hashable):
      return new_error("unusable as hash key: %s", key.type_name)

    value = eval_node(value_node, env, debug)
    if is_error(value):
      return value
    pairs[key.hash_key()] = HashPair(key, value)
  return Hash(pairs)


def eval_index_expression(node: IndexExpr, env: Environment, debug: bool = False) -> Object:
  collection = eval_node(node.collection, env, debug)
  if is_error(collection):
    return collection
  index = eval_node(node.index, env, debug)
  if is_error(index):
    return index

  if isinstance(collection, Array) and isinstance(index, Integer):
    # No counting from the end: negative indices are out of range too
    if not 0 <= index.value < len(collection.elements):
      return new_error("list index out of range")
    return collection.elements[index.value]
  elif isinstance(collection, Hash):
    if not isinstance(index, Hashable):
      return new_error("unusable as hash key: %s", index.type_name)
    pair = collection.pairs.get(index.hash_key())
    return pair.value if pair is not None else NULL
  else:
    return new_error("index operator not supported: %s", collection.type_name)


# ============================================================================
# OPERATORS
# ============================================================================

def eval_identifier(node: Identifier, env: Environment, debug: bool = False) -> Object:
  """Look up a name in the environment chain, then among the built-ins"""
  value = env.get(node.name)
  if value is not None:
    return value

  builtin = get_builtin_function(node.name)
  if builtin is not None:
    return builtin

  return new_error("undefined name: '%s'", node.name)


def eval_prefix_expression(node: PrefixExpr, env: Environment, debug: bool = False) -> Object:
  right = eval_node(node.right, env, debug)
  if is_error(right):
    return right

  if node.op == "!":
    return FALSE if right is TRUE else TRUE
  elif node.op == "-" and isinstance(right, Integer):
    return Integer(wrap_int64(-right.value))
  else:
    return operation_error(node.op, right)


def eval_infix_expression(node: InfixExpr, env: Environment, debug: bool = False) -> Object:
  left = eval_node(node.left, env, debug)
  if is_error(left):
    return left
  right = eval_node(node.right, env, debug)
  if is_error(right):
    return right

  return apply_infix_operator(node.op, left, right)


def apply_infix_operator(op: str, left: Object, right: Object) -> Object:
  """Apply a binary operator to two evaluated operands"""
  if isinstance(left, Integer) and isinstance(right, Integer):
    operation = INTEGER_OPERATORS.get(op)
    if operation is None:
      return operation_error(op, left, right)
    return operation(left, right)
  elif isinstance(left, String) and isinstance(right, String):
    if op != "+":
      return operation_error(op, left, right)
    return String(left.value + right.value)
  elif op == "==":
    return native_bool(left is right)
  elif op == "!=":
    return native_bool(left is not right)
  else:
    return operation_error(op, left, right)


def eval_if_expression(node: IfExpr, env: Environment, debug: bool = False) -> Object:
  condition = eval_node(node.condition, env, debug)
  if is_error(condition):
    return condition

  # Only the TRUE singleton selects the consequence
  if condition is TRUE:
    return eval_node(node.consequence, env, debug)
  elif node.alternative is not None:
    return eval_node(node.alternative, env, debug)
  else:
    return NULL


# ============================================================================
# FUNCTION APPLICATION
# ============================================================================

def eval_call_expression(node: CallExpr, env: Environment, debug: bool = False) -> Object:
  callee = eval_node(node.callee, env, debug)
  if is_error(callee):
    return callee

  args, error = eval_expressions(node.args, env, debug)
  if error is not None:
    return error

  return apply_function(callee, args, debug)


def apply_function(fn: Object, args: Sequence[Object], debug: bool = False) -> Object:
  """Call a user function or built-in with already evaluated arguments"""
  if isinstance(fn, Function):
    if len(args) != len(fn.params):
      return new_error("wrong number of arguments: want=%d, got=%d", len(fn.params), len(args))

    call_env = fn.env.child()
    for param, arg in zip(fn.params, args):
      call_env.set(param.name, arg)

    result = eval_node(fn.body, call_env, debug)
    if isinstance(result, ReturnValue):
      return result.value
    return result
  elif isinstance(fn, Builtin):
    if debug:
      logger.debug("Calling builtin: %s", fn.name)
    return fn.fn(*args)
  else:
    return new_error("not a function: %s", fn.type_name)


# ============================================================================
# ENTRY POINTS
# ============================================================================

def evaluate(source_text: str, environment: Environment, debug: bool = False,
             filename: str = "<input>") -> Tuple[Optional[Object], List[ParseError]]:
  """
  Tokenize, parse and evaluate source_text in environment.
  Nothing is evaluated when the source has parse errors.
  """
  program, errors = create_parser(debug).parse_string(source_text, filename)
  if errors:
    return None, errors
  return eval_node(program, environment, debug), []


class UPLInterpreter:
  """Evaluation engine holding one root environment across calls"""

  def __init__(self, debug: bool = False, environment: Optional[Environment] = None):
    self.debug = debug
    self.environment = environment if environment is not None else Environment()
    self.parser = create_parser(debug)

  def eval(self, node: Node) -> Optional[Object]:
    return eval_node(node, self.environment, self.debug)

  def evaluate(self, source_text: str, filename: str = "<input>") -> Tuple[Optional[Object], List[ParseError]]:
    return evaluate(source_text, self.environment, self.debug, filename)

  def run_file(self, filepath: str) -> Optional[Object]:
    """Parse and evaluate a file; raises UPLParseError if it cannot be parsed"""
    program = self.parser.parse_file(filepath)
    logger.info("Running %s (%d statements)", filepath, len(program.statements))
    return self.eval(program)


# ============================================================================
# FACTORY FUNCTIONS
# ============================================================================

def create_interpreter(debug: bool = False) -> UPLInterpreter:
  """Factory function returning an interpreter with a fresh environment"""
  return UPLInterpreter(debug=debug)


def create_debug_interpreter() -> UPLInterpreter:
  """Factory function returning a debug interpreter"""
  return create_interpreter(debug=True)
