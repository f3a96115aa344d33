"""CLI entry point for the FoxDream interpreter.

Usage:
    python -m foxdream [-v|-vv|-vvv|-vvvv] [--max-steps N] [-I DIR ...] [program_file]

Options:
  -v            Increase debug verbosity (can be repeated)
  --max-steps   Stop with a runtime error after N executed statements
  -I DIR        Extra directory searched by `import`

Without a program file an interactive session is started.  Debug
information is written to `debug.txt` in the current directory when
verbosity is greater than zero.

Exit codes: 64 bad invocation, 65 syntax error, 70 runtime error.
"""

import argparse
import sys
from pathlib import Path
from typing import List, Optional

from .errors import ErrorVal, FoxRuntimeError, FoxSyntaxError
from .interpreter import Interpreter
from .parser import parse_program
from .resolver import FileResolver

EX_USAGE = 64
EX_DATAERR = 65
EX_SOFTWARE = 70

PROMPT = 'fox-dream> '


class ArgumentParser(argparse.ArgumentParser):
    def error(self, message: str):
        self.print_usage(sys.stderr)
        self.exit(EX_USAGE, f"{self.prog}: error: {message}\n")


def format_error(kind: str, err: ErrorVal) -> str:
    return f"[{err.line}:{err.column}] - {kind} error near of `{err.lexeme}`: {err.message}"


def report_syntax(exc: FoxSyntaxError):
    for err in exc.errors:
        print(format_error('Parsing', err), file=sys.stderr)


def report_runtime(exc: FoxRuntimeError):
    print(format_error('Runtime', exc.err), file=sys.stderr)


def run_file(path: Path, interpreter: Interpreter, resolver: FileResolver) -> int:
    try:
        source = path.read_text(encoding='utf-8')
    except OSError as exc:
        print(f"Error: cannot read {path}: {exc.strerror}", file=sys.stderr)
        return EX_USAGE
    try:
        program = parse_program(source, resolver)
    except FoxSyntaxError as exc:
        report_syntax(exc)
        return EX_DATAERR
    try:
        interpreter.run(program)
    except FoxRuntimeError as exc:
        report_runtime(exc)
        return EX_SOFTWARE
    return 0


def run_prompt(interpreter: Interpreter, resolver: FileResolver) -> int:
    while True:
        try:
            line = input(PROMPT)
        except EOFError:
            print()
            return 0
        try:
            interpreter.run(parse_program(line, resolver))
        except FoxSyntaxError as exc:
            report_syntax(exc)
        except FoxRuntimeError as exc:
            report_runtime(exc)


def main(argv: Optional[List[str]] = None) -> int:
    parser = ArgumentParser(prog='foxdream', description="FoxDream language interpreter")
    parser.add_argument('-v', action='count', default=0, help='increase debug verbosity (can be repeated)')
    parser.add_argument('--max-steps', type=int, default=None, metavar='N',
                        help='abort after N executed statements')
    parser.add_argument('-I', dest='include', action='append', default=[], metavar='DIR',
                        help='additional directory searched by import')
    parser.add_argument('program', nargs='?', help='FoxDream program file to execute')
    args = parser.parse_args(argv)

    sys.setrecursionlimit(max(sys.getrecursionlimit(), 10000))
    interpreter = Interpreter(debug_level=args.v, max_steps=args.max_steps)
    try:
        if args.program is None:
            return run_prompt(interpreter, FileResolver(args.include + [Path.cwd()]))
        program_file = Path(args.program)
        resolver = FileResolver([program_file.parent] + args.include + [Path.cwd()])
        return run_file(program_file, interpreter, resolver)
    finally:
        interpreter.close()


if __name__ == '__main__':
    sys.exit(main())
