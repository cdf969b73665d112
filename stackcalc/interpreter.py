import logging
from dataclasses import dataclass
from typing import Callable, Optional

from stackcalc.codegen import Bytecode, Instruction, format_bytecode, generate
from stackcalc.parser import Expression, format_expression, parse
from stackcalc.runtime import TraceCallback, execute
from stackcalc.tokenizer import Token, tokenize
from stackcalc.utils import format_number

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Evaluation:
    """Every intermediate product of one pass through the pipeline"""

    code: str
    tokens: list[Token]
    expression: Expression
    bytecode: Bytecode
    result: float


def run_pipeline(code: str, trace: Optional[TraceCallback] = None) -> Evaluation:
    logger.debug("Evaluating %r", code)
    tokens = tokenize(code)
    expression = parse(tokens)
    bytecode = generate(expression)
    result = execute(bytecode, trace=trace)
    logger.debug("%r evaluated to %r", code, result)
    return Evaluation(code=code, tokens=tokens, expression=expression, bytecode=bytecode, result=result)


def evaluate(code: str) -> float:
    return run_pipeline(code).result


def evaluate_verbose(code: str, echo: Callable[[str], None] = print) -> float:
    """Same as evaluate, but prints each stage as soon as it is produced.

    Errors propagate unchanged after the stages that did succeed were printed.
    """
    tokens = tokenize(code)
    echo(f"=== TOKENS ===\n{' '.join(str(t) for t in tokens)}\n")

    expression = parse(tokens)
    echo(f"=== AST ===\n{format_expression(expression)}\n")

    bytecode = generate(expression)
    echo(f"=== BYTECODE ===\n{format_bytecode(bytecode)}\n")

    echo("=== EXECUTION ===")

    def print_step(instruction: Instruction, stack: list[float]) -> None:
        echo(f"{str(instruction): <12} [{', '.join(format_number(v) for v in stack)}]")

    result = execute(bytecode, trace=print_step)
    echo(f"\n=== RESULT ===\n{format_number(result)}\n")
    return result
