import enum
import logging
from dataclasses import dataclass
from typing import Optional

from stackcalc.parser import BinaryOperation, BinaryOperator, Expression, UnaryOperation, UnaryOperator, walk_postorder
from stackcalc.utils import PrintableEnum, format_number

logger = logging.getLogger(__name__)


class OpCode(PrintableEnum):
    PUSH = enum.auto()
    NEG = enum.auto()
    ADD = enum.auto()
    SUB = enum.auto()
    MULT = enum.auto()
    DIV = enum.auto()
    MOD = enum.auto()
    POW = enum.auto()


@dataclass(frozen=True)
class Instruction:
    op: OpCode
    arg: Optional[float] = None

    def __str__(self) -> str:
        if self.arg is None:
            return str(self.op)
        return f"{self.op} {format_number(self.arg)}"


Bytecode = list[Instruction]


BINARY_OPCODES = {
    BinaryOperator.ADD: OpCode.ADD,
    BinaryOperator.SUB: OpCode.SUB,
    BinaryOperator.MUL: OpCode.MULT,
    BinaryOperator.DIV: OpCode.DIV,
    BinaryOperator.MOD: OpCode.MOD,
    BinaryOperator.POW: OpCode.POW,
}

UNARY_OPCODES = {
    UnaryOperator.NEG: OpCode.NEG,
}


def generate(expression: Expression) -> Bytecode:
    """Linearizes the tree for the stack machine.

    Operands come before their operator and the left operand before the right one,
    so the runtime finds the right operand on top of the stack.
    """
    bytecode: Bytecode = []
    for node in walk_postorder(expression):
        if isinstance(node, float):
            bytecode.append(Instruction(OpCode.PUSH, node))
        elif isinstance(node, UnaryOperation):
            bytecode.append(Instruction(UNARY_OPCODES[node.operator]))
        elif isinstance(node, BinaryOperation):
            bytecode.append(Instruction(BINARY_OPCODES[node.operator]))
        else:
            raise RuntimeError(f"Unexpected expression type: {node!r}")
    logger.debug("Generated %d instructions", len(bytecode))
    return bytecode


def format_bytecode(bytecode: Bytecode) -> str:
    return "\n".join(str(instruction) for instruction in bytecode)
