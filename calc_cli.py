#!/usr/bin/env python3
"""
Command-line shell over the calculator engine.

Evaluate once and print what the calculator display would show:

    python calc_cli.py "1/(sin(3.14)+x)" --var x=2
    python calc_cli.py "0/0"            # -> Undefined
    python calc_cli.py "(1+2"           # -> Error

Sample a function for graphing and write the points as CSV:

    python calc_cli.py "sin(x)" --graph --out sin.csv
    python calc_cli.py "x^2 - 4" --graph --x-min -10 --x-max 10 --step 0.5 --compiled

The display mapping lives here, not in calc_core: any engine error shows as
"Error" and a nan result shows as "Undefined".
"""

import argparse
import math
import sys
from typing import Dict, List, Mapping, Optional

from calc_core import CalcError, parse_and_evaluate
from calc_sampling import X_MAX, X_MIN, GraphFunction

ERROR_TEXT = "Error"
UNDEFINED_TEXT = "Undefined"


def format_display(value: float) -> str:
    if math.isnan(value):
        return UNDEFINED_TEXT
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    return repr(float(value))


def compute_display(text: str, bindings: Optional[Mapping[str, float]] = None) -> str:
    try:
        value = parse_and_evaluate(text, bindings)
    except CalcError:
        return ERROR_TEXT
    return format_display(value)


def invert_sign_text(text: str) -> str:
    """The "+/-" key: drop a leading '-', otherwise wrap as -(text)."""
    if not text.strip():
        return text
    if text.startswith("-"):
        return text[1:]
    return f"-({text})"


def reciprocal_text(text: str) -> str:
    """The "1/x" key."""
    return f"1/({text})"


def parse_bindings(items: Optional[List[str]]) -> Dict[str, float]:
    """Turn ["x=2", "y=-1.5"] into {"x": 2.0, "y": -1.5}."""
    bindings: Dict[str, float] = {}
    for item in items or []:
        name, sep, value = item.partition("=")
        if not sep or not name.strip():
            raise ValueError(f"Expected NAME=VALUE, got {item!r}")
        bindings[name.strip()] = float(value)
    return bindings


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Evaluate or graph a calculator expression."
    )
    p.add_argument(
        "expression",
        help='Expression, e.g. "1/(sin(3.14)+x)"',
    )
    p.add_argument(
        "--var",
        dest="variables",
        action="append",
        default=None,
        help="Variable binding NAME=VALUE (repeatable).",
    )
    p.add_argument(
        "--invert",
        action="store_true",
        help='Apply the "+/-" key to the expression before evaluating.',
    )
    p.add_argument(
        "--reciprocal",
        action="store_true",
        help='Apply the "1/x" key to the expression before evaluating.',
    )
    p.add_argument(
        "--graph",
        action="store_true",
        help="Sample the expression over an x range instead of evaluating once.",
    )
    p.add_argument(
        "--out",
        dest="out_path",
        default=None,
        help="CSV output path for --graph (default: stdout).",
    )
    p.add_argument("--x-min", type=float, default=X_MIN, help=f"Lower x bound (default: {X_MIN}).")
    p.add_argument("--x-max", type=float, default=X_MAX, help=f"Upper x bound (default: {X_MAX}).")
    p.add_argument(
        "--step",
        type=float,
        default=None,
        help="Sampling step (default: pi/18 for trig functions, else 0.1).",
    )
    p.add_argument(
        "--compiled",
        action="store_true",
        help="JIT-compile the expression with LLVM before sampling.",
    )
    return p.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    text = args.expression
    if args.invert:
        text = invert_sign_text(text)
    if args.reciprocal:
        text = reciprocal_text(text)

    try:
        bindings = parse_bindings(args.variables)
    except ValueError as e:
        print(f"[WARN] {e}", file=sys.stderr)
        return 2

    if not args.graph:
        print(compute_display(text, bindings))
        return 0

    row = GraphFunction(index=0)
    try:
        row.set_raw_input(text)
        df = row.sample(args.x_min, args.x_max, args.step, compiled=args.compiled)
    except (CalcError, ValueError) as e:
        print(f"[WARN] Cannot graph {text!r}: {e}", file=sys.stderr)
        print(ERROR_TEXT)
        return 1

    if args.out_path:
        df.to_csv(args.out_path, index=False)
        print(f"[INFO] Wrote {len(df)} points for {row.label} {text} to {args.out_path}")
    else:
        df.to_csv(sys.stdout, index=False)
    return 0


if __name__ == "__main__":
    sys.exit(main())
