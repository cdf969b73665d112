import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from stackcalc.codegen import Bytecode, Instruction, OpCode
from stackcalc.errors import CalcError, ErrorStage

logger = logging.getLogger(__name__)


@dataclass
class CalcRuntimeError(CalcError):
    stage = ErrorStage.RUNTIME


BinaryOperationImpl = Callable[[float, float], float]
UnaryOperationImpl = Callable[[float], float]
TraceCallback = Callable[[Instruction, list[float]], None]


def _div(left: float, right: float) -> float:
    if right == 0.0:
        raise CalcRuntimeError("Division by zero")
    return left / right


def _mod(left: float, right: float) -> float:
    """Euclidean remainder, always in [0, |right|) for finite operands"""
    if right == 0.0 or math.isinf(left) or math.isnan(left) or math.isnan(right):
        return math.nan
    remainder = math.fmod(left, right)
    if remainder < 0:
        remainder += abs(right)
    return remainder


def _is_odd_integer(x: float) -> bool:
    return math.isfinite(x) and x.is_integer() and int(x) % 2 == 1


def _pow(base: float, exponent: float) -> float:
    # math.pow raises where IEEE-754 pow returns nan or inf
    try:
        return math.pow(base, exponent)
    except OverflowError:
        negative = base < 0 and _is_odd_integer(exponent)
        return -math.inf if negative else math.inf
    except ValueError:
        if base == 0.0:
            negative = math.copysign(1.0, base) < 0 and _is_odd_integer(exponent)
            return -math.inf if negative else math.inf
        return math.nan


BINARY_IMPLS: dict[OpCode, BinaryOperationImpl] = {
    OpCode.ADD: lambda left, right: left + right,
    OpCode.SUB: lambda left, right: left - right,
    OpCode.MULT: lambda left, right: left * right,
    OpCode.DIV: _div,
    OpCode.MOD: _mod,
    OpCode.POW: _pow,
}

UNARY_IMPLS: dict[OpCode, UnaryOperationImpl] = {
    OpCode.NEG: lambda value: -value,
}


class StackMachine:
    """Executes bytecode on an operand stack.

    One instance runs one program. Popping an empty stack or finishing with
    anything but a single value means the parser or code generator is broken,
    so it is reported with the builtin RuntimeError and not as CalcRuntimeError.
    """

    def __init__(self, trace: Optional[TraceCallback] = None) -> None:
        self.stack: list[float] = []
        self.trace = trace

    def pop(self) -> float:
        if not self.stack:
            raise RuntimeError("`pop` called on an empty runtime stack")
        return self.stack.pop()

    def run(self, bytecode: Bytecode) -> float:
        for instruction in bytecode:
            self.run_instruction(instruction)
        if len(self.stack) != 1:
            raise RuntimeError(f"Program finished with {len(self.stack)} values on the stack, expected exactly one")
        return self.pop()

    def run_instruction(self, instruction: Instruction) -> None:
        if instruction.op is OpCode.PUSH:
            if instruction.arg is None:
                raise RuntimeError("PUSH instruction without an argument")
            self.stack.append(instruction.arg)
        elif instruction.op in UNARY_IMPLS:
            value = self.pop()
            self.stack.append(UNARY_IMPLS[instruction.op](value))
        elif instruction.op in BINARY_IMPLS:
            right, left = self.pop(), self.pop()
            self.stack.append(BINARY_IMPLS[instruction.op](left, right))
        else:
            raise RuntimeError(f"Unexpected instruction: {instruction}")

        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("%s -> %s", instruction, list(self.stack))
        if self.trace is not None:
            self.trace(instruction, list(self.stack))


def execute(bytecode: Bytecode, trace: Optional[TraceCallback] = None) -> float:
    return StackMachine(trace=trace).run(bytecode)
