import argparse
import logging
import sys

from stackcalc.errors import CalcError
from stackcalc.interpreter import evaluate, evaluate_verbose
from stackcalc.utils import format_number


def run_once(code: str, verbose: bool) -> bool:
    try:
        result = evaluate_verbose(code) if verbose else evaluate(code)
    except CalcError as e:
        print(e)
        return False
    if not verbose:
        print(format_number(result))
    return True


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Evaluate arithmetic expressions on a stack machine")
    parser.add_argument("-v", "--verbose", action="store_true", help="print tokens, AST, bytecode and every execution step")
    parser.add_argument("-e", "--expression", metavar="EXPR", help="evaluate EXPR and exit instead of starting the REPL")
    parser.add_argument("--log-level", default="WARNING", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


if __name__ == "__main__":
    args = parse_args(sys.argv[1:])
    logging.basicConfig(level=args.log_level, format="%(levelname)s %(name)s: %(message)s")

    if args.expression is not None:
        sys.exit(0 if run_once(args.expression, args.verbose) else 1)

    while True:
        try:
            code = input("> ")
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not code.strip():
            continue

        run_once(code, args.verbose)
