import enum
from dataclasses import dataclass
from typing import ClassVar

from stackcalc.utils import PrintableEnum


class ErrorStage(PrintableEnum):
    LEXING = enum.auto()
    PARSING = enum.auto()
    RUNTIME = enum.auto()


@dataclass
class CalcError(Exception):
    """Base for every user-facing evaluation error.

    Each pipeline stage raises its own subclass; ``stage`` tells which one
    failed. Defects inside the pipeline are not reported this way.
    """

    stage: ClassVar[ErrorStage]

    errmsg: str

    def header(self) -> str:
        return f"[{self.stage.name.capitalize()} error] {self.errmsg}"

    def __str__(self) -> str:
        return self.header()
