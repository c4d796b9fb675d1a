"""
Utilities module for the UPL interpreter
Error-object builders, argument validation and 64-bit integer arithmetic
shared by the evaluator and the built-ins
"""

from typing import Callable, Dict, Optional, Sequence, Type
import operator

from objects import Error, Integer, Object, native_bool


INT64_MIN = -2 ** 63
INT64_MAX = 2 ** 63 - 1

_ARGUMENT_COUNTS = {1: "one argument", 2: "two arguments"}


# ==================== ERROR OBJECT BUILDERS ====================

def new_error(message: str, *args) -> Error:
  """
  Build an Error object from a %-style message

  Examples:
    new_error("undefined name: '%s'", "x") -> Error("undefined name: 'x'")
  """
  return Error(message % args if args else message)


def is_error(value: Optional[Object]) -> bool:
  """True when value is an Error object"""
  return isinstance(value, Error)


def arity_error(func_name: str, expected: int, got: int) -> Error:
  """
  Generate arity mismatch error for a built-in

  Args:
    func_name: Built-in name
    expected: Expected number of arguments
    got: Actual number of arguments

  Returns:
    Error object with formatted message
  """
  wanted = _ARGUMENT_COUNTS.get(expected, f"{expected} arguments")
  return Error(f"{func_name}() takes exactly {wanted}: {got} given")


def type_mismatch_error(func_name: str, actual: Object) -> Error:
  """
  Generate type mismatch error for a built-in argument

  Args:
    func_name: Built-in name
    actual: Offending argument

  Returns:
    Error object with formatted message
  """
  return Error(f"unsupported argument type of {func_name}(): '{actual.type_name}'")


def operation_error(op: str, left: Object, right: Optional[Object] = None) -> Error:
  """
  Generate operation error for an unsupported prefix or infix operator

  Examples:
    operation_error("-", TRUE) -> Error("unsupported operator: -'bool'")
    operation_error("+", Integer(1), TRUE) -> Error("unsupported operator: 'int' + 'bool'")
  """
  if right is None:
    return Error(f"unsupported operator: {op}'{left.type_name}'")
  return Error(f"unsupported operator: '{left.type_name}' {op} '{right.type_name}'")


# ==================== VALIDATION UTILITIES ====================

def validate_function_args(
  func_name: str,
  args: Sequence[Object],
  expected_types: Sequence[Optional[Type[Object]]]
) -> Optional[Error]:
  """
  Validate built-in arguments against expected object classes

  Args:
    func_name: Function name for error messages
    args: Argument values
    expected_types: One class per parameter, None accepts anything

  Returns:
    The first Error found, or None when the arguments are acceptable
  """
  if len(args) != len(expected_types):
    return arity_error(func_name, len(expected_types), len(args))

  for arg, expected in zip(args, expected_types):
    if expected is not None and not isinstance(arg, expected):
      return type_mismatch_error(func_name, arg)
  return None


# ==================== 64-BIT INTEGER ARITHMETIC ====================

def wrap_int64(value: int) -> int:
  """Wrap an unbounded integer into the signed 64-bit range"""
  return (value - INT64_MIN) % 2 ** 64 + INT64_MIN


def truncating_div(x: int, y: int) -> int:
  """Integer division rounding toward zero; y must be non-zero"""
  quotient = abs(x) // abs(y)
  return -quotient if (x < 0) != (y < 0) else quotient


# ==================== BINARY OPERATION FACTORIES ====================

def binary_arithmetic_op(op: Callable[[int, int], int]) -> Callable[[Integer, Integer], Object]:
  """
  Factory for integer arithmetic that wraps around on overflow

  Examples:
    add = binary_arithmetic_op(operator.add)
    add(Integer(INT64_MAX), Integer(1)) -> Integer(INT64_MIN)
  """
  def arithmetic(x: Integer, y: Integer) -> Object:
    return Integer(wrap_int64(op(x.value, y.value)))

  return arithmetic


def binary_comparison_op(op: Callable[[int, int], bool]) -> Callable[[Integer, Integer], Object]:
  """Factory for integer comparisons yielding the boolean singletons"""
  def comparison(x: Integer, y: Integer) -> Object:
    return native_bool(op(x.value, y.value))

  return comparison


def _integer_division(x: Integer, y: Integer) -> Object:
  if y.value == 0:
    return new_error("division by zero")
  return Integer(wrap_int64(truncating_div(x.value, y.value)))


INTEGER_OPERATORS: Dict[str, Callable[[Integer, Integer], Object]] = {
  "+": binary_arithmetic_op(operator.add),
  "-": binary_arithmetic_op(operator.sub),
  "*": binary_arithmetic_op(operator.mul),
  "/": _integer_division,
  "<": binary_comparison_op(operator.lt),
  ">": binary_comparison_op(operator.gt),
  "==": binary_comparison_op(operator.eq),
  "!=": binary_comparison_op(operator.ne),
}
