"""
Integration tests for SLIM using the example programs
Each examples/NAME.slim is run through the full pipeline and its output
compared with examples/NAME.out
"""

import pytest
from pathlib import Path
from main import run_script_file
from parsing import create_parser

EXAMPLES_DIR = Path(__file__).parent.parent / "examples"
EXAMPLE_FILES = sorted(EXAMPLES_DIR.glob("*.slim"))


class TestFileIntegration:
  """Run complete example files"""

  def test_examples_directory_is_populated(self):
    assert EXAMPLE_FILES, f"No .slim files found in {EXAMPLES_DIR}"

  @pytest.mark.parametrize("slim_file", EXAMPLE_FILES, ids=lambda path: path.stem)
  def test_example_output(self, slim_file, capsys):
    expected = slim_file.with_suffix(".out").read_text(encoding="utf-8")

    status = run_script_file(str(slim_file))

    captured = capsys.readouterr()
    assert status == 0, captured.err
    assert captured.out == expected

  @pytest.mark.parametrize("slim_file", EXAMPLE_FILES, ids=lambda path: path.stem)
  def test_example_parses_cleanly(self, slim_file):
    statements = create_parser().parse_file(str(slim_file))
    assert statements


class TestSpecificFeatures:
  """Whole-program behaviour that spans several stages"""

  def test_deep_recursion_with_raised_limit(self, run, capsys):
    import sys
    from main import RECURSION_LIMIT
    old_limit = sys.getrecursionlimit()
    sys.setrecursionlimit(max(old_limit, RECURSION_LIMIT))
    try:
      run("func count(n) { if (n > 0) count(n - 1); else print(\"done\"); } count(300);")
    finally:
      sys.setrecursionlimit(old_limit)
    assert capsys.readouterr().out == "done\n"

  def test_program_state_survives_between_runs(self, parser):
    from interpreter import create_interpreter
    interpreter = create_interpreter()
    interpreter.interpret(parser.parse_string("let total = 1;"))
    interpreter.interpret(parser.parse_string("total *= 7;"))
    result = interpreter.interpret(parser.parse_string("total;"))
    assert result == {'type': "Num", 'value': 7}
