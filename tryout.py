from stackcalc.errors import CalcError
from stackcalc.interpreter import evaluate_verbose

for code in [
    "5",
    "-1",
    "1 + 1",
    "--5",
    "1 + -1",
    "4 + 6 * 3",
    "(4 + 6)",
    "(4+6) * 3",
    "8 - 3 - 2",
    "8 / 4 / 2",
    "2^3^2",
    "-2^2",
    "-7 % 3",
    ".35 * 2",
    "5 / 0",
    "(1 + 2",
    "1 + @",
]:
    print("=" * 10)
    print(f"code: {code!r}")
    try:
        evaluate_verbose(code)
    except CalcError as e:
        print(e)
