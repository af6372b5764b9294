"""
SLIM Standard Library
Native functions callable by name from SLIM programs, plus the operator
implementations shared with the interpreter
"""

from typing import Any, Callable, Dict, List, Optional
import math
import operator
import re
from utilities import (
  SlimRuntimeError,
  binary_comparison_op,
  binary_arithmetic_op,
  checked_number,
  numeric_overflow_error,
  validate_function_args,
  type_mismatch_error,
  operation_error,
  display_type_name,
)


# ============================================================================
# UTILITY FUNCTIONS
# ============================================================================

def make_value(value: Any, type_name: str = "Nil") -> Dict:
  """Create a runtime value"""
  return {
      'value': value,
      'type': type_name
  }


def make_nil() -> Dict:
  return make_value(None, "Nil")


def make_bool(flag: bool) -> Dict:
  return make_value(bool(flag), "Bool")


def format_number(number: Any) -> str:
  """Render a number the way SLIM prints it (no trailing .0 on integral floats)"""
  if isinstance(number, float):
    if number.is_integer():
      return str(int(number))
    return repr(number)
  try:
    return str(number)
  except ValueError:
    raise SlimRuntimeError("Number too large to display") from None


def show_value(value: Dict) -> str:
  """Display form of a runtime value, used by print, str and string concatenation"""
  value_type = value['type']
  if value_type == "String":
    return value['value']
  elif value_type == "Num":
    return format_number(value['value'])
  elif value_type == "Bool":
    return "true" if value['value'] else "false"
  elif value_type == "Nil":
    return "nil"
  elif value_type == "function":
    return f"<func {value['name']}>"
  elif value_type == "builtin_function":
    return f"<native {value['name']}>"
  else:
    return f"<{value_type}>"


# ============================================================================
# OUTPUT
# ============================================================================

def slim_print(*values: Dict) -> Dict:
  """Print values separated by spaces, followed by a newline"""
  print(" ".join(show_value(value) for value in values))
  return make_nil()


# ============================================================================
# CONVERSIONS
# ============================================================================

_NUMBER_PATTERN = re.compile(r'\s*-?\d+(\.\d+)?\s*$')


def slim_str(value: Dict) -> Dict:
  """Convert any value to its display string"""
  return make_value(show_value(value), "String")


def slim_num(value: Dict) -> Dict:
  """Convert a string or bool to a number"""
  if value['type'] == "Num":
    return value
  elif value['type'] == "Bool":
    return make_value(1 if value['value'] else 0, "Num")
  elif value['type'] == "String":
    text = value['value']
    if not _NUMBER_PATTERN.match(text):
      raise SlimRuntimeError(f"Cannot convert '{text}' to a number")
    text = text.strip()
    try:
      number = float(text) if '.' in text else int(text)
    except ValueError:
      raise SlimRuntimeError("Number too long to convert") from None
    return make_value(checked_number(number), "Num")
  else:
    raise type_mismatch_error("num", "argument 1", "string, number or bool", value)


def slim_len(value: Dict) -> Dict:
  """Length of a string"""
  validate_function_args("len", [value], ["String"])
  return make_value(len(value['value']), "Num")


def slim_type(value: Dict) -> Dict:
  """Name of a value's type"""
  return make_value(display_type_name(value), "String")


def slim_floor(value: Dict) -> Dict:
  """Round a number down to an integer"""
  validate_function_args("floor", [value], ["Num"])
  return make_value(math.floor(value['value']), "Num")


# ============================================================================
# COMPARISON FUNCTIONS
# ============================================================================

def slim_eq(x: Dict, y: Dict) -> Dict:
  """Equality: values of different types are never equal"""
  if x['type'] != y['type']:
    return make_bool(False)
  if x['type'] in ("function", "builtin_function"):
    return make_bool(x is y)
  return make_bool(x['value'] == y['value'])


def slim_ne(x: Dict, y: Dict) -> Dict:
  """Not equal comparison"""
  result = slim_eq(x, y)
  return make_bool(not result['value'])


_slim_lt_impl = binary_comparison_op(operator.lt, "<")
_slim_gt_impl = binary_comparison_op(operator.gt, ">")
_slim_le_impl = binary_comparison_op(operator.le, "<=")
_slim_ge_impl = binary_comparison_op(operator.ge, ">=")


def slim_lt(x: Dict, y: Dict) -> Dict:
  return _slim_lt_impl(x, y, make_value)


def slim_gt(x: Dict, y: Dict) -> Dict:
  return _slim_gt_impl(x, y, make_value)


def slim_le(x: Dict, y: Dict) -> Dict:
  return _slim_le_impl(x, y, make_value)


def slim_ge(x: Dict, y: Dict) -> Dict:
  return _slim_ge_impl(x, y, make_value)


# ============================================================================
# ARITHMETIC FUNCTIONS
# ============================================================================

def slim_add(x: Dict, y: Dict) -> Dict:
  """Addition for numbers, concatenation when either side is a string"""
  if x['type'] == "Num" and y['type'] == "Num":
    try:
      total = x['value'] + y['value']
    except OverflowError:
      raise numeric_overflow_error() from None
    return make_value(checked_number(total), "Num")
  elif x['type'] == "String" or y['type'] == "String":
    return make_value(show_value(x) + show_value(y), "String")
  else:
    raise operation_error("+", x, y)


_slim_sub_impl = binary_arithmetic_op(operator.sub, "-")
_slim_mul_impl = binary_arithmetic_op(operator.mul, "*")


def slim_sub(x: Dict, y: Dict) -> Dict:
  """Subtraction"""
  return _slim_sub_impl(x, y, make_value)


def slim_mul(x: Dict, y: Dict) -> Dict:
  """Multiplication"""
  return _slim_mul_impl(x, y, make_value)


def slim_div(x: Dict, y: Dict) -> Dict:
  """Division"""
  if x['type'] != "Num" or y['type'] != "Num":
    raise operation_error("/", x, y)
  if y['value'] == 0:
    raise SlimRuntimeError("Division by zero")
  try:
    quotient = x['value'] / y['value']
  except OverflowError:
    raise numeric_overflow_error() from None
  return make_value(checked_number(quotient), "Num")


def slim_negate(x: Dict) -> Dict:
  if x['type'] != "Num":
    raise SlimRuntimeError(f"Operator '-' cannot be applied to {display_type_name(x)}")
  return make_value(-x['value'], "Num")


# ============================================================================
# BUILT-IN FUNCTION REGISTRY
# ============================================================================

def make_builtin_function(name: str, func: Callable, arity: Optional[int],
                          type_signature: str = "") -> Dict:
  """Create a built-in function value; arity None means variadic"""
  return {
      'type': 'builtin_function',
      'name': name,
      'func': func,
      'arity': arity,
      'type_signature': type_signature
  }


BUILTIN_FUNCTIONS: Dict[str, Dict] = {
    "print": make_builtin_function("print", slim_print, None, "a... -> nil"),
    "str": make_builtin_function("str", slim_str, 1, "a -> string"),
    "num": make_builtin_function("num", slim_num, 1, "string | number | bool -> number"),
    "len": make_builtin_function("len", slim_len, 1, "string -> number"),
    "type": make_builtin_function("type", slim_type, 1, "a -> string"),
    "floor": make_builtin_function("floor", slim_floor, 1, "number -> number"),
}


# Operators used by Binary expressions and compound assignment
BINARY_OPERATORS: Dict[str, Callable[[Dict, Dict], Dict]] = {
    '+': slim_add,
    '-': slim_sub,
    '*': slim_mul,
    '/': slim_div,
    '==': slim_eq,
    '!=': slim_ne,
    '<': slim_lt,
    '>': slim_gt,
    '<=': slim_le,
    '>=': slim_ge,
}


def get_builtin_function(name: str) -> Dict:
  """Get a built-in function by name"""
  if name in BUILTIN_FUNCTIONS:
    return BUILTIN_FUNCTIONS[name]
  else:
    raise SlimRuntimeError(f"Unknown built-in function: {name}")


def list_builtin_functions() -> List[str]:
  """List all available built-in functions"""
  return list(BUILTIN_FUNCTIONS.keys())
