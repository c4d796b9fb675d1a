"""
UPL Programming Language - Main Entry Point
A small dynamically typed language with closures, arrays and hashes
"""

import sys
import argparse
import atexit
import logging
import os
import platform
from datetime import datetime
from typing import Callable, List, Optional, TypeVar

# Readline support for history and auto-completion
try:
  import readline
  READLINE_AVAILABLE = True
except ImportError:
  READLINE_AVAILABLE = False

from error_handling import UPLParseError, UPLRuntimeError, format_parse_errors
from interpreter import UPLInterpreter, create_debug_interpreter, create_interpreter
from objects import Error
from parsing import UPLParser, create_debug_parser, create_parser, pretty_print_ast
from stdlib import list_builtin_functions
from tokens import KEYWORDS


VERSION = "UPL v0.1.0"
PROMPT = ">>> "
HISTORY_FILE = "~/.upl_history"
RECURSION_LIMIT = 10000

T = TypeVar('T')

logger = logging.getLogger(__name__)


def create_arg_parser() -> argparse.ArgumentParser:
  """Create command line argument parser"""
  parser = argparse.ArgumentParser(
      prog='upl',
      description='Unnamed Programming Language - a small interpreted language',
      formatter_class=argparse.RawDescriptionHelpFormatter,
      epilog="""
Examples:
  %(prog)s script.upl             # Run a UPL script
  %(prog)s                        # Interactive mode
  %(prog)s -i                     # Interactive mode
  %(prog)s --parse script.upl     # Parse and show the AST
  %(prog)s --debug script.upl     # Run with parser and evaluator tracing
        """
  )

  parser.add_argument(
      'script',
      nargs='?',
      help='UPL script file to execute'
  )

  parser.add_argument(
      '-i', '--interactive',
      action='store_true',
      help='Start interactive mode'
  )

  parser.add_argument(
      '--parse',
      action='store_true',
      help='Parse file and show AST (for debugging)'
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


def configure_logging(debug: bool = False) -> None:
  """Send tracing to stderr when debugging, stay quiet otherwise"""
  logging.basicConfig(
      level=logging.DEBUG if debug else logging.WARNING,
      format='%(name)s: %(message)s',
      stream=sys.stderr
  )


def guard_recursion(action: Callable[[], T]) -> T:
  """Run an evaluation, reporting host stack exhaustion as a UPLRuntimeError"""
  try:
    return action()
  except RecursionError as e:
    raise UPLRuntimeError("maximum recursion depth exceeded") from e


def parse_file(script_path: str, debug: bool = False) -> None:
  """Parse a UPL script file and show the AST"""
  parser = create_debug_parser() if debug else create_parser()

  try:
    program = parser.parse_file(script_path)
  except UPLParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    sys.exit(1)

  print(f"Parsed {len(program.statements)} statements:")
  print("=" * 50)

  for i, stmt in enumerate(program.statements, 1):
    print(f"\nStatement {i}: {stmt}")
    print(pretty_print_ast(stmt), end='')


def run_script_file(script_path: str, debug: bool = False) -> None:
  """Run a UPL script file, printing its final value if it has one"""
  interpreter = create_debug_interpreter() if debug else create_interpreter()

  try:
    result = guard_recursion(lambda: interpreter.run_file(script_path))
  except UPLParseError as e:
    print(f"Parse error in '{script_path}': {e}")
    sys.exit(1)
  except UPLRuntimeError as e:
    print(f"Runtime error in '{script_path}': {e.message}")
    sys.exit(1)

  if result is not None:
    print(result.inspect())
  if isinstance(result, Error):
    sys.exit(1)


def setup_readline() -> None:
  """Setup readline with history and auto-completion"""
  if not READLINE_AVAILABLE:
    return

  history_file = os.path.expanduser(HISTORY_FILE)
  try:
    readline.read_history_file(history_file)
  except OSError:
    pass  # First run, no history yet

  readline.set_history_length(1000)

  completions = sorted(KEYWORDS) + list_builtin_functions() + [":parse", ":env", ":help", "exit"]

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
    except OSError as e:
      logger.warning("Cannot write history file %s: %s", history_file, e)

  atexit.register(save_history)


def banner() -> str:
  now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
  return f"Unnamed Programming Language (main, {now}) on {platform.system().lower()}({platform.machine()})"


def show_environment(interpreter: UPLInterpreter) -> None:
  print("Current environment:")
  bindings = interpreter.environment.bindings
  if not bindings:
    print("  (no user-defined bindings)")
    return
  for name, value in bindings.items():
    val_str = value.inspect().replace('\n', ' ')
    if len(val_str) > 60:
      val_str = val_str[:57] + "..."
    print(f"  {name} = {val_str}")


def show_help() -> None:
  print("REPL Commands:")
  print("  :parse <src>      - Show the parsed AST")
  print("  :env              - Show current environment")
  print("  :help             - Show this help")
  print("  exit              - Exit REPL")
  print()
  print("Language features:")
  print("  let x = 5;                       - Binding")
  print("  let add = fn(a, b) { a + b };    - Function")
  print("  if (x > 1) { x } else { 0 }      - Conditional")
  print("  [1, 2, 3][0]                     - Array index")
  print("  {\"a\": 1}[\"a\"]                    - Hash lookup")
  print(f"  Built-ins: {', '.join(list_builtin_functions())}")


def show_parse(source: str, parser: UPLParser) -> None:
  program, errors = parser.parse_string(source)
  if errors:
    print(format_parse_errors(errors))
    return
  print(program)
  print(pretty_print_ast(program), end='')


def execute_line(code: str, interpreter: UPLInterpreter) -> None:
  """Evaluate one REPL line in the session environment and print the outcome"""
  try:
    result, errors = guard_recursion(lambda: interpreter.evaluate(code))
  except UPLRuntimeError as e:
    print(f"Runtime error: {e.message}")
    return

  if errors:
    print(format_parse_errors(errors))
  elif result is not None:
    print(result.inspect())


def run_interactive_mode(debug: bool = False) -> None:
  """Run UPL in interactive mode; one environment persists across lines"""
  print(banner())
  if debug:
    print("Debug mode enabled")

  setup_readline()

  parser = create_debug_parser() if debug else create_parser()
  interpreter = create_debug_interpreter() if debug else create_interpreter()

  while True:
    try:
      code = input(PROMPT)
    except (KeyboardInterrupt, EOFError):
      print()
      break

    stripped = code.strip()
    if stripped == "exit":
      break
    if not stripped:
      continue

    # Special commands
    if stripped.startswith(":parse "):
      show_parse(stripped[len(":parse "):], parser)
    elif stripped == ":env":
      show_environment(interpreter)
    elif stripped == ":help":
      show_help()
    else:
      execute_line(code, interpreter)


def main(argv: Optional[List[str]] = None) -> None:
  """Main entry point for UPL"""
  arg_parser = create_arg_parser()
  args = arg_parser.parse_args(argv)

  configure_logging(args.debug)
  sys.setrecursionlimit(max(sys.getrecursionlimit(), RECURSION_LIMIT))

  if args.script and not args.interactive:
    if not os.path.exists(args.script):
      print(f"Error: Script file '{args.script}' does not exist")
      sys.exit(1)

    if args.parse:
      parse_file(args.script, debug=args.debug)
    else:
      run_script_file(args.script, debug=args.debug)
  elif args.parse:
    arg_parser.error("--parse needs a script file")
  else:
    run_interactive_mode(debug=args.debug)


if __name__ == "__main__":
  main()
