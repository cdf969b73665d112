import contextlib
import enum
import logging
from dataclasses import dataclass
from typing import Iterator, Union

from stackcalc.errors import CalcError, ErrorStage
from stackcalc.tokenizer import Token, TokenType, untokenize
from stackcalc.utils import PrintableEnum, format_number

logger = logging.getLogger(__name__)

MAX_NESTING_DEPTH = 100


@dataclass
class ParserError(CalcError):
    stage = ErrorStage.PARSING

    tokens: list[Token]
    error_token_idx: int

    def __str__(self) -> str:
        error_token_idx = min(self.error_token_idx, len(self.tokens) - 1)
        parsed_text = untokenize(self.tokens[: error_token_idx + 1])
        caret_offset = len(parsed_text) - len(self.tokens[error_token_idx].lexeme) if self.tokens else 0
        return "\n".join([self.header(), untokenize(self.tokens), " " * caret_offset + "^"])


class BinaryOperator(PrintableEnum):
    ADD = enum.auto()
    SUB = enum.auto()
    MUL = enum.auto()
    DIV = enum.auto()
    MOD = enum.auto()
    POW = enum.auto()


@dataclass(frozen=True)
class BinaryOperation:
    operator: BinaryOperator
    left: "Expression"
    right: "Expression"


class UnaryOperator(PrintableEnum):
    NEG = enum.auto()


@dataclass(frozen=True)
class UnaryOperation:
    operator: UnaryOperator
    operand: "Expression"


Expression = Union[float, UnaryOperation, BinaryOperation]


TERM_OPERATORS = {
    TokenType.PLUS: BinaryOperator.ADD,
    TokenType.MINUS: BinaryOperator.SUB,
}

FACTOR_OPERATORS = {
    TokenType.STAR: BinaryOperator.MUL,
    TokenType.SLASH: BinaryOperator.DIV,
    TokenType.PERCENT: BinaryOperator.MOD,
}


def parse(tokens: list[Token]) -> Expression:
    parser = _Parser(tokens)
    expression = parser.expression()
    if parser.peek().type is not TokenType.EOF:
        raise parser.error(f"Unexpected {parser.peek().type} after the end of expression")
    logger.debug("Parsed %d tokens", len(tokens))
    return expression


class _Parser:
    """Recursive descent over an index-based token cursor, one method per precedence level"""

    def __init__(self, tokens: list[Token]) -> None:
        end = tokens[-1].position + len(tokens[-1].lexeme) if tokens else 0
        self.tokens = list(tokens)
        if not self.tokens or self.tokens[-1].type is not TokenType.EOF:
            self.tokens.append(Token(type=TokenType.EOF, lexeme="", position=end))
        self.i = 0
        self.depth = 0

    def peek(self) -> Token:
        return self.tokens[self.i]

    def advance(self) -> Token:
        if self.i >= len(self.tokens):
            raise RuntimeError("Token cursor advanced past the end of stream")
        token = self.tokens[self.i]
        if token.type is not TokenType.EOF:
            self.i += 1
        return token

    def error(self, errmsg: str) -> ParserError:
        return ParserError(errmsg, tokens=self.tokens, error_token_idx=self.i)

    @contextlib.contextmanager
    def nested(self) -> Iterator[None]:
        self.depth += 1
        if self.depth > MAX_NESTING_DEPTH:
            raise self.error(f"Expression is nested deeper than {MAX_NESTING_DEPTH} levels")
        try:
            yield
        finally:
            self.depth -= 1

    def expression(self) -> Expression:
        result = self.factor()
        while self.peek().type in TERM_OPERATORS:
            operator = TERM_OPERATORS[self.advance().type]
            result = BinaryOperation(operator=operator, left=result, right=self.factor())
        return result

    def factor(self) -> Expression:
        result = self.exponentiation()
        while self.peek().type in FACTOR_OPERATORS:
            operator = FACTOR_OPERATORS[self.advance().type]
            result = BinaryOperation(operator=operator, left=result, right=self.exponentiation())
        return result

    def exponentiation(self) -> Expression:
        operands = [self.negation()]
        while self.peek().type is TokenType.CARET:
            self.advance()
            operands.append(self.negation())
        # right-associative: 2^2^3 => 2^(2^3)
        result = operands.pop()
        while operands:
            result = BinaryOperation(operator=BinaryOperator.POW, left=operands.pop(), right=result)
        return result

    def negation(self) -> Expression:
        minus_count = 0
        while self.peek().type is TokenType.MINUS:
            self.advance()
            minus_count += 1
        result = self.primary()
        for _ in range(minus_count):
            result = UnaryOperation(operator=UnaryOperator.NEG, operand=result)
        return result

    def primary(self) -> Expression:
        token = self.peek()
        if token.type is TokenType.NUMBER:
            self.advance()
            if token.value is None:
                raise RuntimeError(f"Numeral token without a value: {token}")
            return token.value
        elif token.type is TokenType.BRACKET_OPEN:
            return self.group()
        else:
            raise self.error(f"Expected a number or '(', found {token.type}")

    def group(self) -> Expression:
        self.advance()
        with self.nested():
            inner = self.expression()
        if self.peek().type is not TokenType.BRACKET_CLOSE:
            raise self.error(f"Expected ')' to close the bracket, found {self.peek().type}")
        self.advance()
        return inner


def walk_postorder(expression: Expression) -> Iterator[Expression]:
    """Yields every node of the tree with children before their parent, left before right.

    Uses an explicit stack, so long left-associative chains like "1+1+...+1" are fine.
    """
    stack: list[tuple[Expression, bool]] = [(expression, False)]
    while stack:
        node, children_done = stack.pop()
        if children_done or isinstance(node, float):
            yield node
            continue
        stack.append((node, True))
        if isinstance(node, BinaryOperation):
            stack.append((node.right, False))
            stack.append((node.left, False))
        elif isinstance(node, UnaryOperation):
            stack.append((node.operand, False))
        else:
            raise RuntimeError(f"Unexpected expression type: {node!r}")


BINARY_OPERATOR_SYMBOLS = {
    BinaryOperator.ADD: "+",
    BinaryOperator.SUB: "-",
    BinaryOperator.MUL: "*",
    BinaryOperator.DIV: "/",
    BinaryOperator.MOD: "%",
    BinaryOperator.POW: "^",
}


def format_expression(expression: Expression) -> str:
    """Fully parenthesized infix form, e.g. '((8 / 4) / 2)'"""
    rendered: list[str] = []
    for node in walk_postorder(expression):
        if isinstance(node, float):
            rendered.append(format_number(node))
        elif isinstance(node, UnaryOperation):
            rendered.append(f"-{rendered.pop()}")
        else:
            right, left = rendered.pop(), rendered.pop()
            rendered.append(f"({left} {BINARY_OPERATOR_SYMBOLS[node.operator]} {right})")
    return rendered.pop()
