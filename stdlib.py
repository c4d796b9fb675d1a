"""
UPL Standard Library
Built-in functions available to every program. They are resolved after the
environment chain misses, so user bindings shadow them.
"""

from typing import Callable, Dict, List, Optional

from objects import NULL, Array, Builtin, Hash, Integer, Object, String
from utilities import arity_error, type_mismatch_error, validate_function_args


# ============================================================================
# PRINT FUNCTIONS
# ============================================================================

def upl_print(*args: Object) -> Object:
  """Print the rendering of each argument, separated by spaces"""
  print(" ".join(arg.inspect() for arg in args))
  return NULL


# ============================================================================
# SIZE FUNCTIONS
# ============================================================================

def upl_len(*args: Object) -> Object:
  """Get length of a string, array or hash"""
  if len(args) != 1:
    return arity_error("len", 1, len(args))

  value = args[0]
  if isinstance(value, String):
    return Integer(len(value.value))
  elif isinstance(value, Array):
    return Integer(len(value.elements))
  elif isinstance(value, Hash):
    return Integer(len(value.pairs))
  else:
    return type_mismatch_error("len", value)


# ============================================================================
# ARRAY FUNCTIONS
# ============================================================================

def upl_first(*args: Object) -> Object:
  """Get first element of an array, null when empty"""
  error = validate_function_args("first", args, [Array])
  if error is not None:
    return error
  elements = args[0].elements
  return elements[0] if elements else NULL


def upl_last(*args: Object) -> Object:
  """Get last element of an array, null when empty"""
  error = validate_function_args("last", args, [Array])
  if error is not None:
    return error
  elements = args[0].elements
  return elements[-1] if elements else NULL


def upl_rest(*args: Object) -> Object:
  """Get all but the first element of an array, null when empty"""
  error = validate_function_args("rest", args, [Array])
  if error is not None:
    return error
  elements = args[0].elements
  return Array(elements[1:]) if elements else NULL


def upl_push(*args: Object) -> Object:
  """Return a new array with the element appended; the original is unchanged"""
  error = validate_function_args("push", args, [Array, None])
  if error is not None:
    return error
  array, element = args
  return Array(array.elements + (element,))


# ============================================================================
# BUILT-IN FUNCTION REGISTRY
# ============================================================================

def make_builtin_function(name: str, func: Callable[..., Object]) -> Builtin:
  """Create a built-in function value"""
  return Builtin(name, func)


BUILTIN_FUNCTIONS: Dict[str, Builtin] = {
  # I/O functions
  "print": make_builtin_function("print", upl_print),

  # Collection functions
  "len": make_builtin_function("len", upl_len),
  "first": make_builtin_function("first", upl_first),
  "last": make_builtin_function("last", upl_last),
  "rest": make_builtin_function("rest", upl_rest),
  "push": make_builtin_function("push", upl_push),
}


def get_builtin_function(name: str) -> Optional[Builtin]:
  """Get a built-in function by name, None if there is no such built-in"""
  return BUILTIN_FUNCTIONS.get(name)


def list_builtin_functions() -> List[str]:
  """List all available built-in functions"""
  return list(BUILTIN_FUNCTIONS.keys())
