"""
Utilities module for the SLIM interpreter
Contains the runtime error type and common helpers shared by stdlib and interpreter
"""

from typing import Any, Callable, Dict, List, Optional
import math


class SlimRuntimeError(Exception):
  """Runtime error raised while executing a SLIM program"""

  def __init__(self, message: str, span: Optional[Any] = None):
    self.message = message
    self.span = span
    super().__init__(self._format_error())

  def _format_error(self) -> str:
    if self.span:
      return f"{self.message} at {self.span}"
    return self.message


# ==================== TYPE NAMES ====================

# Runtime type tags as shown to SLIM programs by the type() native
TYPE_DISPLAY_NAMES: Dict[str, str] = {
    "Num": "number",
    "String": "string",
    "Bool": "bool",
    "Nil": "nil",
    "function": "function",
    "builtin_function": "function",
}


def display_type_name(value: Dict) -> str:
  """Human readable type name of a runtime value"""
  return TYPE_DISPLAY_NAMES.get(value.get('type'), str(value.get('type')))


def is_truthy(val: Dict) -> bool:
  """
  Truthiness used by if, while, and, or, not

  false, nil, 0 and "" are falsey, everything else is truthy.
  """
  value_type = val['type']
  if value_type == "Nil":
    return False
  if value_type in ("Bool", "Num", "String"):
    return bool(val['value'])
  return True


# ==================== ERROR MESSAGE BUILDERS ====================

def type_mismatch_error(
  func_name: str,
  param_name: str,
  expected: str,
  actual: Dict
) -> SlimRuntimeError:
  """
  Generate type mismatch error

  Args:
    func_name: Function name
    param_name: Parameter name
    expected: Expected type
    actual: Actual value dict

  Returns:
    SlimRuntimeError with formatted message
  """
  return SlimRuntimeError(
    f"{func_name} requires {expected} for {param_name}, got {display_type_name(actual)}"
  )


def arity_error(func_name: str, expected: int, got: int) -> SlimRuntimeError:
  """
  Generate arity mismatch error

  Args:
    func_name: Function name
    expected: Expected number of arguments
    got: Actual number of arguments

  Returns:
    SlimRuntimeError with formatted message
  """
  return SlimRuntimeError(
    f"{func_name} expects {expected} arguments, got {got}"
  )


def operation_error(op: str, left: Dict, right: Dict) -> SlimRuntimeError:
  """Generate operand type error for a binary operator"""
  return SlimRuntimeError(
    f"Operator '{op}' cannot be applied to {display_type_name(left)} and {display_type_name(right)}"
  )


def undefined_name_error(name: str) -> SlimRuntimeError:
  return SlimRuntimeError(f"Undefined variable '{name}'")


def undefined_function_error(name: str) -> SlimRuntimeError:
  return SlimRuntimeError(f"Undefined function '{name}'")


def undeclared_assignment_error(name: str) -> SlimRuntimeError:
  return SlimRuntimeError(f"Assignment to undeclared variable '{name}'")


def not_callable_error(value: Dict) -> SlimRuntimeError:
  return SlimRuntimeError(f"Can only call functions, got {display_type_name(value)}")


def numeric_overflow_error() -> SlimRuntimeError:
  return SlimRuntimeError("Numeric overflow")


def checked_number(value: Any) -> Any:
  """Reject arithmetic results that overflowed to infinity"""
  if isinstance(value, float) and math.isinf(value):
    raise numeric_overflow_error()
  return value


# ==================== VALIDATION UTILITIES ====================

def validate_function_args(
  func_name: str,
  args: List[Dict],
  expected_types: List[str]
) -> None:
  """
  Validate argument types of a native; arity is checked by the caller

  Args:
    func_name: Function name for error messages
    args: List of argument values
    expected_types: List of expected type tags

  Raises:
    SlimRuntimeError if validation fails
  """
  for i, (arg, expected) in enumerate(zip(args, expected_types)):
    if arg['type'] != expected:
      raise type_mismatch_error(
        func_name,
        f"argument {i+1}",
        TYPE_DISPLAY_NAMES.get(expected, expected),
        arg
      )


# ==================== BINARY OPERATION FACTORIES ====================

# Types ordered by < <= > >=
COMPARABLE_TYPES = ("Num", "String")


def binary_comparison_op(
  op: Callable[[Any, Any], bool],
  op_name: str
) -> Callable[[Dict, Dict, Callable], Dict]:
  """
  Factory for binary comparison operations

  Args:
    op: Python operator function (e.g., operator.lt)
    op_name: Operator symbol for error messages

  Returns:
    Function comparing two numbers or two strings

  Examples:
    slim_lt = binary_comparison_op(operator.lt, "<")
    result = slim_lt({"type": "Num", "value": 1}, {"type": "Num", "value": 2}, make_value)
  """
  def comparison(x: Dict, y: Dict, make_value: Callable) -> Dict:
    if x['type'] != y['type'] or x['type'] not in COMPARABLE_TYPES:
      raise operation_error(op_name, x, y)
    return make_value(op(x['value'], y['value']), "Bool")

  return comparison


def binary_arithmetic_op(
  op: Callable[[Any, Any], Any],
  op_name: str
) -> Callable[[Dict, Dict, Callable], Dict]:
  """
  Factory for binary arithmetic operations on numbers

  Args:
    op: Python operator function (e.g., operator.sub)
    op_name: Operator symbol for error messages

  Returns:
    Function that performs the arithmetic operation
  """
  def arithmetic(x: Dict, y: Dict, make_value: Callable) -> Dict:
    if x['type'] != "Num" or y['type'] != "Num":
      raise operation_error(op_name, x, y)
    try:
      result = op(x['value'], y['value'])
    except OverflowError:
      raise numeric_overflow_error() from None
    return make_value(checked_number(result), "Num")

  return arithmetic
