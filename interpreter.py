"""
SLIM Interpreter - tree-walking evaluator
Runtime values and environments are plain dictionaries; environments are
mutable frames linked to their enclosing scope
"""

from typing import Dict, List, Optional
import sys

from ast_nodes import Stmt
from utilities import (
  SlimRuntimeError,
  arity_error,
  is_truthy,
  not_callable_error,
  undeclared_assignment_error,
  undefined_function_error,
  undefined_name_error,
)
from stdlib import (
  BINARY_OPERATORS,
  BUILTIN_FUNCTIONS,
  make_bool,
  make_nil,
  make_value,
  slim_negate,
)


# Compound assignment operator -> binary operator it applies
COMPOUND_ASSIGNMENT_OPERATORS = {
    '+=': '+',
    '-=': '-',
    '*=': '*',
    '/=': '/',
}


# ============================================================================
# DATA STRUCTURES
# ============================================================================

def make_runtime_env(parent: Optional[Dict] = None, bindings: Optional[Dict] = None) -> Dict:
  """Create a runtime environment frame linked to its enclosing frame"""
  return {
      'parent': parent,
      'bindings': bindings or {}
  }


def make_function(name: str, params: List[str], body: List[Stmt], closure_env: Dict) -> Dict:
  """Create a function value that captures its defining environment"""
  return {
      'type': 'function',
      'name': name,
      'params': params,
      'body': body,
      'closure_env': closure_env
  }


# ============================================================================
# ENVIRONMENT OPERATIONS
# ============================================================================

def env_define(env: Dict, name: str, value: Dict) -> None:
  """Bind name in this frame, shadowing any outer binding"""
  env['bindings'][name] = value


def env_find_frame(env: Dict, name: str) -> Optional[Dict]:
  """Innermost frame in the chain that binds name"""
  frame = env
  while frame is not None:
    if name in frame['bindings']:
      return frame
    frame = frame['parent']
  return None


def env_lookup_value(env: Dict, name: str) -> Dict:
  """Look up a value in the environment chain"""
  frame = env_find_frame(env, name)
  if frame is None:
    raise undefined_name_error(name)
  return frame['bindings'][name]


def create_builtin_runtime_env() -> Dict:
  """Create the global environment with natives and constants"""
  env = make_runtime_env()
  for name, builtin in BUILTIN_FUNCTIONS.items():
    env_define(env, name, builtin)

  env_define(env, "true", make_bool(True))
  env_define(env, "false", make_bool(False))
  env_define(env, "nil", make_nil())
  return env


# ============================================================================
# EXPRESSION EVALUATION
# ============================================================================

def eval_expression(node, env: Dict, debug: bool = False) -> Dict:
  """Evaluate an expression node to a runtime value"""
  node_type = node.type

  if node_type == "NUMBER":
    return make_value(node.value, "Num")
  elif node_type == "STRING":
    return make_value(node.value, "String")
  elif node_type == "IDENTIFIER":
    return eval_identifier(node, env)
  elif node_type == "GROUPING":
    return eval_expression(node.expression, env, debug)
  elif node_type == "UNARY":
    return eval_unary(node, env, debug)
  elif node_type == "BINARY":
    return eval_binary(node, env, debug)
  elif node_type == "CALL":
    return eval_call(node, env, debug)
  else:
    raise RuntimeError(f"Unknown expression node type: {node_type}")


def eval_identifier(node, env: Dict) -> Dict:
  try:
    return env_lookup_value(env, node.name)
  except SlimRuntimeError as e:
    raise SlimRuntimeError(e.message, node.span) from None


def eval_unary(node, env: Dict, debug: bool = False) -> Dict:
  operand = eval_expression(node.operand, env, debug)
  if node.op == "not":
    return make_bool(not is_truthy(operand))
  return _with_span(slim_negate, node.span, operand)


def eval_binary(node, env: Dict, debug: bool = False) -> Dict:
  """Evaluate binary operation; 'and'/'or' short-circuit"""
  op = node.op
  left_val = eval_expression(node.left, env, debug)

  if op == "and":
    if not is_truthy(left_val):
      return make_bool(False)
    return make_bool(is_truthy(eval_expression(node.right, env, debug)))
  if op == "or":
    if is_truthy(left_val):
      return make_bool(True)
    return make_bool(is_truthy(eval_expression(node.right, env, debug)))

  right_val = eval_expression(node.right, env, debug)
  return apply_binary_operator(op, left_val, right_val, node.span)


def apply_binary_operator(op: str, left_val: Dict, right_val: Dict, span=None) -> Dict:
  if op not in BINARY_OPERATORS:
    raise RuntimeError(f"Unknown operation: {op}")
  return _with_span(BINARY_OPERATORS[op], span, left_val, right_val)


def eval_call(node, env: Dict, debug: bool = False) -> Dict:
  """Evaluate function application"""
  if node.callee.type == "IDENTIFIER" and env_find_frame(env, node.callee.name) is None:
    raise SlimRuntimeError(undefined_function_error(node.callee.name).message, node.callee.span)
  callee = eval_expression(node.callee, env, debug)
  args = [eval_expression(arg, env, debug) for arg in node.arguments]

  if callee['type'] == 'function':
    if debug:
      print(f"Evaluating: CALL {callee['name']}", file=sys.stderr)
    return call_function(callee, args, node.span, debug)

  elif callee['type'] == 'builtin_function':
    if debug:
      print(f"Evaluating: CALL <native {callee['name']}>", file=sys.stderr)
    arity = callee['arity']
    if arity is not None and arity != len(args):
      raise SlimRuntimeError(arity_error(callee['name'], arity, len(args)).message, node.span)
    return _with_span(callee['func'], node.span, *args)

  else:
    raise SlimRuntimeError(not_callable_error(callee).message, node.span)


def call_function(func: Dict, args: List[Dict], span=None, debug: bool = False) -> Dict:
  """Run a user function body in a fresh frame whose parent is the closure"""
  params = func['params']
  if len(params) != len(args):
    raise SlimRuntimeError(arity_error(func['name'], len(params), len(args)).message, span)

  call_env = make_runtime_env(func['closure_env'])
  for param, arg in zip(params, args):
    env_define(call_env, param, arg)

  try:
    return execute_statements(func['body'], call_env, debug)
  except RecursionError:
    raise SlimRuntimeError("Maximum recursion depth exceeded", span) from None


def _with_span(func, span, *args) -> Dict:
  """Call a stdlib function, attaching the source span to any runtime error"""
  try:
    return func(*args)
  except SlimRuntimeError as e:
    if e.span is None and span is not None:
      raise SlimRuntimeError(e.message, span) from None
    raise


# ============================================================================
# STATEMENT EXECUTION
# ============================================================================

def execute_statements(statements, env: Dict, debug: bool = False) -> Dict:
  """Execute statements in order; result is the completion value of the last one"""
  result = make_nil()
  for statement in statements:
    result = execute_statement(statement, env, debug)
  return result


def execute_statement(node, env: Dict, debug: bool = False) -> Dict:
  """
  Execute a statement and return its completion value.
  Expression statements and if/blocks yield a value; everything else yields nil.
  """
  if debug:
    print(f"Evaluating: {node.type}", file=sys.stderr)

  node_type = node.type

  if node_type == "EXPR_STMT":
    return eval_expression(node.expression, env, debug)
  elif node_type == "LET":
    return exec_let(node, env, debug)
  elif node_type == "FN":
    return exec_fn(node, env)
  elif node_type == "ASSIGN":
    return exec_assign(node, env, debug)
  elif node_type == "BLOCK":
    return execute_statements(node.statements, make_runtime_env(env), debug)
  elif node_type == "IF":
    return exec_if(node, env, debug)
  elif node_type == "WHILE":
    return exec_while(node, env, debug)
  else:
    raise RuntimeError(f"Unknown statement node type: {node_type}")


def exec_let(node, env: Dict, debug: bool = False) -> Dict:
  if node.initializer is not None:
    value = eval_expression(node.initializer, env, debug)
  else:
    value = make_nil()
  env_define(env, node.name, value)
  return make_nil()


def exec_fn(node, env: Dict) -> Dict:
  func = make_function(node.name, list(node.params), list(node.body), env)
  env_define(env, node.name, func)
  return make_nil()


def exec_assign(node, env: Dict, debug: bool = False) -> Dict:
  frame = env_find_frame(env, node.name)
  if frame is None:
    raise SlimRuntimeError(undeclared_assignment_error(node.name).message, node.span)

  value = eval_expression(node.value, env, debug)
  if node.op in COMPOUND_ASSIGNMENT_OPERATORS:
    current = frame['bindings'][node.name]
    value = apply_binary_operator(COMPOUND_ASSIGNMENT_OPERATORS[node.op], current, value, node.span)

  frame['bindings'][node.name] = value
  return make_nil()


def exec_if(node, env: Dict, debug: bool = False) -> Dict:
  if is_truthy(eval_expression(node.condition, env, debug)):
    return execute_statement(node.then_branch, env, debug)
  elif node.else_branch is not None:
    return execute_statement(node.else_branch, env, debug)
  return make_nil()


def exec_while(node, env: Dict, debug: bool = False) -> Dict:
  while is_truthy(eval_expression(node.condition, env, debug)):
    execute_statement(node.body, env, debug)
  return make_nil()


# ============================================================================
# PROGRAM EVALUATION
# ============================================================================

class SlimInterpreter:
  """Runs programs against one global environment"""

  def __init__(self, debug: bool = False):
    self.debug = debug
    self.global_env = create_builtin_runtime_env()

  def interpret(self, statements: List[Stmt]) -> Dict:
    """Execute a program; returns the completion value of the last statement"""
    try:
      return execute_statements(statements, self.global_env, self.debug)
    except RecursionError:
      raise SlimRuntimeError("Maximum recursion depth exceeded") from None

  def lookup(self, name: str) -> Dict:
    return env_lookup_value(self.global_env, name)


def create_interpreter(debug: bool = False) -> SlimInterpreter:
  """Factory function returning an interpreter"""
  return SlimInterpreter(debug=debug)


def create_debug_interpreter() -> SlimInterpreter:
  """Factory function returning a debug interpreter"""
  return create_interpreter(debug=True)
