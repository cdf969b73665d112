import enum
import re
from dataclasses import dataclass
from typing import Optional

from stackcalc.errors import CalcError, ErrorStage
from stackcalc.utils import PrintableEnum

# single-char operators or a numeral; a numeral may start with "." (".35")
TOKEN_PATTERN = re.compile(r"[()+\-*/^%]|[0-9]*\.[0-9]+|[0-9]+")


@dataclass
class TokenizerError(CalcError):
    stage = ErrorStage.LEXING

    code: str
    error_char_idx: int

    def __str__(self) -> str:
        print_start_idx = max(0, self.error_char_idx - 10)
        print_ellipsis_pre = print_start_idx > 0
        print_end_idx = min(len(self.code), self.error_char_idx + 10)
        print_ellipsis_post = print_end_idx < len(self.code)
        return "\n".join(
            [
                self.header(),
                (
                    ("..." if print_ellipsis_pre else "")
                    + f"{self.code[print_start_idx:print_end_idx]}"
                    + ("..." if print_ellipsis_post else "")
                ),
                " " * (self.error_char_idx - print_start_idx + (3 if print_ellipsis_pre else 0)) + "^",
            ]
        )


class TokenType(PrintableEnum):
    BRACKET_OPEN = enum.auto()
    BRACKET_CLOSE = enum.auto()
    PLUS = enum.auto()
    MINUS = enum.auto()
    STAR = enum.auto()
    SLASH = enum.auto()
    CARET = enum.auto()
    PERCENT = enum.auto()
    NUMBER = enum.auto()
    EOF = enum.auto()


@dataclass(frozen=True)
class Token:
    type: TokenType
    lexeme: str
    position: int = 0
    value: Optional[float] = None

    def __str__(self) -> str:
        return f"<{self.type}>{self.lexeme}"


SINGLE_CHAR_TOKENS = {
    "(": TokenType.BRACKET_OPEN,
    ")": TokenType.BRACKET_CLOSE,
    "+": TokenType.PLUS,
    "-": TokenType.MINUS,
    "*": TokenType.STAR,
    "/": TokenType.SLASH,
    "^": TokenType.CARET,
    "%": TokenType.PERCENT,
}


def _to_token(match: "re.Match[str]") -> Token:
    lexeme = match.group()
    if lexeme in SINGLE_CHAR_TOKENS:
        return Token(type=SINGLE_CHAR_TOKENS[lexeme], lexeme=lexeme, position=match.start())
    normalized = "0" + lexeme if lexeme.startswith(".") else lexeme
    return Token(type=TokenType.NUMBER, lexeme=lexeme, position=match.start(), value=float(normalized))


def _first_unmatched_idx(code: str, matches: list["re.Match[str]"]) -> int:
    i = 0
    for match in matches:
        for j in range(i, match.start()):
            if not code[j].isspace():
                return j
        i = match.end()
    for j in range(i, len(code)):
        if not code[j].isspace():
            return j
    return len(code)


def tokenize(code: str) -> list[Token]:
    matches = list(TOKEN_PATTERN.finditer(code))

    leftover = TOKEN_PATTERN.sub("", code).strip()
    if leftover:
        raise TokenizerError(
            f"Unexpected characters: {leftover!r}",
            code=code,
            error_char_idx=_first_unmatched_idx(code, matches),
        )

    return [_to_token(m) for m in matches]


def untokenize(tokens: list[Token]) -> str:
    result = " ".join(t.lexeme for t in tokens if t.type is not TokenType.EOF)

    # ( 1 + 2 ) => (1 + 2)
    result = re.sub(r"\(\s+", "(", result)
    result = re.sub(r"(?<=[0-9.)])\s+\)", ")", result)

    # 4 ^ 5 => 4^5
    result = re.sub(r"\s*\^\s*", "^", result)
    return result
