"""
SLIM Programming Language - Main Entry Point
Reads a source file, runs tokenizer, parser and interpreter, reports diagnostics
"""

import atexit
import os
import sys
import argparse
from pathlib import Path
from typing import List, Optional

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from ast_nodes import pretty_print_ast
from error_handling import SlimSyntaxError, SlimTokenizerError
from parsing import KEYWORDS, create_parser, create_debug_parser
from interpreter import create_interpreter, create_debug_interpreter
from stdlib import BUILTIN_FUNCTIONS, list_builtin_functions, show_value
from utilities import SlimRuntimeError

VERSION = "SLIM v0.1.0"

# Deep SLIM recursion needs several Python frames per call
RECURSION_LIMIT = 10000

HISTORY_FILE = "~/.slim_history"


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='slim',
      description='SLIM Programming Language - a small tree-walking interpreter',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.slim            # Run a SLIM script
  %(prog)s -i                     # Interactive mode
  %(prog)s --tokens script.slim   # Tokenize and show tokens
  %(prog)s --parse script.slim    # Parse and show the syntax tree
  %(prog)s --debug script.slim    # Run with debug output
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='SLIM script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--tokens',
      action='store_true',
      help='Tokenize file and show tokens (for debugging)'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show the syntax tree (for debugging)'
  )

  parser.add_argument(
      '--debug',
      action='store_true',
      help='Enable debug output for all stages'
  )

  parser.add_argument(
      '--version',
      action='version',
      version=VERSION
  )

  return parser


def read_source(script_path: str) -> Optional[str]:
  """Read a script, reporting unreadable files; returns None on failure"""
  try:
    with open(script_path, 'r', encoding='utf-8') as f:
      return f.read()
  except FileNotFoundError:
    print(f"[slim ERROR] File '{script_path}' does not exist.", file=sys.stderr)
  except PermissionError:
    print(f"[slim ERROR] Permission denied reading '{script_path}'.", file=sys.stderr)
  except UnicodeDecodeError as e:
    print(f"[slim ERROR] Cannot decode file '{script_path}': {e}", file=sys.stderr)
  return None


def report_syntax_errors(error: SlimSyntaxError) -> None:
  for message in error.format_errors(with_context=True):
    print(message, file=sys.stderr)


def run_source(source: str, filename: str = "<input>", debug: bool = False,
               show_tokens: bool = False, show_tree: bool = False) -> int:
  """Run the whole pipeline over one source text; returns the exit status"""
  parser = create_debug_parser() if debug else create_parser()

  try:
    tokens = parser.tokenize(source, filename)
  except SlimTokenizerError as e:
    print(str(e), file=sys.stderr)
    return 1

  if show_tokens:
    for token in tokens:
      print(f"{token.span.start_line}:{token.span.start_col}\t{token.category}\t{token}")
    return 0

  statements, errors = parser.parse_tokens(tokens)
  if errors:
    report_syntax_errors(SlimSyntaxError(errors, source))
    return 1

  if show_tree:
    for i, statement in enumerate(statements, 1):
      print(f"Statement {i}:")
      print(pretty_print_ast(statement))
    return 0

  interpreter = create_debug_interpreter() if debug else create_interpreter()
  try:
    interpreter.interpret(statements)
  except SlimRuntimeError as e:
    sys.stdout.flush()
    print(f"[Runtime Error] {e}", file=sys.stderr)
    return 1

  return 0


def run_script_file(script_path: str, debug: bool = False,
                    show_tokens: bool = False, show_tree: bool = False) -> int:
  """Run a SLIM script file"""
  source = read_source(script_path)
  if source is None:
    return 1
  if debug:
    print(f"Running {script_path}...", file=sys.stderr)
  return run_source(source, script_path, debug, show_tokens, show_tree)


def setup_readline() -> None:
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser(HISTORY_FILE)
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First session, no history yet

  readline.set_history_length(1000)

  # Keywords, constants and natives
  completions = sorted(KEYWORDS) + ["true", "false", "nil", "exit", "help"] + list_builtin_functions()

  def completer(text, state):
    options = [word for word in completions if word.startswith(text)]
    if state < len(options):
      return options[state]
    return None

  readline.set_completer(completer)
  readline.parse_and_bind("tab: complete")

  def save_history():
    try:
      readline.write_history_file(history_file)
    except OSError:
      pass

  atexit.register(save_history)


def print_natives() -> None:
  """List the natives with their type signatures"""
  print("Natives:")
  for name in list_builtin_functions():
    print(f"  {name} : {BUILTIN_FUNCTIONS[name]['type_signature']}")


def run_interactive_mode(debug: bool = False) -> None:
  """Run SLIM line by line against one persistent global environment"""
  print(f"{VERSION} - Interactive Mode")
  print("Type 'exit' to quit, 'help' for natives")
  if READLINE_AVAILABLE:
    print("Readline enabled: use up/down for history, Tab for completion")
  print()

  parser = create_debug_parser() if debug else create_parser()
  interpreter = create_debug_interpreter() if debug else create_interpreter()
  setup_readline()

  while True:
    try:
      code = input("slim> ")
    except (KeyboardInterrupt, EOFError):
      print("\nGoodbye!")
      break

    if code.strip() == "exit":
      break
    if code.strip() == "help":
      print_natives()
      continue
    if not code.strip():
      continue

    try:
      statements = parser.parse_string(code, "<stdin>")
      result = interpreter.interpret(statements)
      if result['type'] != "Nil":
        print(f"=> {show_value(result)}")
    except SlimTokenizerError as e:
      print(str(e))
    except SlimSyntaxError as e:
      for message in e.format_errors():
        print(message)
    except SlimRuntimeError as e:
      print(f"[Runtime Error] {e}")


def main(argv: Optional[List[str]] = None) -> int:
  """Main entry point for SLIM"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)
  sys.setrecursionlimit(max(sys.getrecursionlimit(), RECURSION_LIMIT))

  if args.script:
    if not Path(args.script).exists():
      print(f"[slim ERROR] File '{args.script}' does not exist.", file=sys.stderr)
      return 1
    return run_script_file(args.script, debug=args.debug,
                           show_tokens=args.tokens, show_tree=args.parse)

  if args.interactive:
    run_interactive_mode(debug=args.debug)
    return 0

  print("[slim ERROR] No files were given to SLIM.", file=sys.stderr)
  arg_parser.print_usage(sys.stderr)
  return 1


if __name__ == "__main__":
  sys.exit(main())
