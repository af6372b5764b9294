"""
Test configuration for SLIM tests
"""

import pytest
import sys
from pathlib import Path

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from parsing import create_parser
from interpreter import create_interpreter


@pytest.fixture
def parser():
  """Provide a fresh parser instance for each test"""
  return create_parser()


@pytest.fixture
def run(parser):
  """Parse and run a program in a fresh interpreter, returning the interpreter"""
  def _run(code: str):
    interpreter = create_interpreter()
    interpreter.interpret(parser.parse_string(code))
    return interpreter
  return _run


@pytest.fixture
def evaluate(parser):
  """Evaluate a single expression and return its runtime value"""
  def _evaluate(expression: str):
    interpreter = create_interpreter()
    return interpreter.interpret(parser.parse_string(f"{expression};"))
  return _evaluate
