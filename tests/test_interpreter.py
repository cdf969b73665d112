import logging
import math

import pytest

from stackcalc.codegen import Instruction, OpCode
from stackcalc.errors import CalcError, ErrorStage
from stackcalc.interpreter import evaluate, evaluate_verbose, run_pipeline
from stackcalc.parser import BinaryOperation, BinaryOperator, ParserError
from stackcalc.runtime import CalcRuntimeError
from stackcalc.tokenizer import TokenizerError, TokenType


@pytest.mark.parametrize(
    "code, expected",
    [
        pytest.param("8 - 3 - 2", 3.0),
        pytest.param("2^3^2", 512.0),
        pytest.param("2 + 3 * 4", 14.0),
        pytest.param("(2+3)*4", 20.0),
        pytest.param("--5", 5.0),
        pytest.param("-2^2", 4.0),
        pytest.param("-7 % 3", 2.0),
        pytest.param(".35", 0.35),
    ],
)
def test_evaluate(code: str, expected: float) -> None:
    assert evaluate(code) == expected


@pytest.mark.parametrize(
    "code, expected_error, expected_stage",
    [
        pytest.param("5 / 0", CalcRuntimeError, ErrorStage.RUNTIME),
        pytest.param("(1 + 2", ParserError, ErrorStage.PARSING),
        pytest.param("1 + @", TokenizerError, ErrorStage.LEXING),
    ],
)
def test_evaluate_errors(code: str, expected_error: type[CalcError], expected_stage: ErrorStage) -> None:
    with pytest.raises(expected_error) as excinfo:
        evaluate(code)
    assert excinfo.value.stage is expected_stage


def test_run_pipeline_exposes_stages() -> None:
    evaluation = run_pipeline("1 + 2")
    assert evaluation.code == "1 + 2"
    assert [t.type for t in evaluation.tokens] == [TokenType.NUMBER, TokenType.PLUS, TokenType.NUMBER]
    assert evaluation.expression == BinaryOperation(operator=BinaryOperator.ADD, left=1.0, right=2.0)
    assert evaluation.bytecode == [
        Instruction(OpCode.PUSH, 1.0),
        Instruction(OpCode.PUSH, 2.0),
        Instruction(OpCode.ADD),
    ]
    assert evaluation.result == 3.0


def test_evaluations_are_independent() -> None:
    with pytest.raises(CalcRuntimeError):
        evaluate("1 / 0")
    assert evaluate("1 + 1") == 2.0


def test_evaluate_verbose_output() -> None:
    lines: list[str] = []
    assert evaluate_verbose("2 * (3 + 4)", echo=lines.append) == 14.0
    output = "\n".join(lines)
    sections = ["=== TOKENS ===", "=== AST ===", "=== BYTECODE ===", "=== EXECUTION ===", "=== RESULT ==="]
    assert [output.index(s) for s in sections] == sorted(output.index(s) for s in sections)
    assert "(2 * (3 + 4))" in output
    assert "PUSH 3" in output
    assert "ADD          [2, 7]" in output
    assert output.rstrip().endswith("14")


def test_evaluate_verbose_stops_at_failing_stage() -> None:
    lines: list[str] = []
    with pytest.raises(ParserError):
        evaluate_verbose("(1 + 2", echo=lines.append)
    assert len(lines) == 1
    assert lines[0].startswith("=== TOKENS ===")


@pytest.mark.parametrize(
    "code",
    ["1", "8 - 3 - 2", "2^3^2", "-2^2", "-7 % 3", "5 % 0", "0^-1", "5 / 0", "(1 + 2", "1 + @", "", "1 2"],
)
def test_verbose_and_silent_agree(code: str) -> None:
    try:
        silent: float | type[Exception] = evaluate(code)
    except CalcError as e:
        silent = type(e)
    try:
        verbose: float | type[Exception] = evaluate_verbose(code, echo=lambda line: None)
    except CalcError as e:
        verbose = type(e)

    if isinstance(silent, float) and isinstance(verbose, float) and math.isnan(silent):
        assert math.isnan(verbose)
    else:
        assert silent == verbose


def test_debug_logging(caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.DEBUG, logger="stackcalc"):
        evaluate("1 + 2")
    messages = [r.getMessage() for r in caplog.records]
    assert "'1 + 2' evaluated to 3.0" in messages
    assert "PUSH 1 -> [1.0]" in messages
    assert "PUSH 2 -> [1.0, 2.0]" in messages
    assert "ADD -> [3.0]" in messages
