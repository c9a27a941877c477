#!/usr/bin/env python3
"""
Graph sampling for calculator expressions.

One parsed expression is evaluated across an evenly spaced x range to produce
plot points:

    y1= sin(x)       x in [-100, 100], step pi/18
    y2= x^2 - 4      x in [-100, 100], step 0.1

Trig expressions get the coarser pi/18 step so that one period still has a
reasonable number of points without flooding the chart; everything else uses
0.1. Points come back as a pandas DataFrame with float columns "x" and "y";
nan / inf values are kept so the caller can break the line at poles.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

import pandas as pd

from calc_codegen_llvm import compile_expression
from calc_core import Expr, ParseError, TRIG_FUNCTIONS, free_variables, parse

X_MIN = -100.0
X_MAX = 100.0
TRIG_INCREMENT = math.pi / 18
DEFAULT_INCREMENT = 0.1
DEFAULT_VAR = "x"

_TRIG_RE = re.compile("|".join(TRIG_FUNCTIONS))


def is_trig_func(text: str) -> bool:
    """True when the raw input mentions any trig function name."""
    return _TRIG_RE.search(text) is not None


def sample_increment(text: str) -> float:
    return TRIG_INCREMENT if is_trig_func(text) else DEFAULT_INCREMENT


def sample_points(
    x_min: float = X_MIN,
    x_max: float = X_MAX,
    incr: float = DEFAULT_INCREMENT,
) -> List[float]:
    """
    Evenly spaced x values from x_min up to and including x_max.

    Each point is x_min + k*incr rather than a running sum, so long sweeps do
    not drift.
    """
    if incr <= 0 or not math.isfinite(incr):
        raise ValueError(f"Sampling increment must be a positive number, got {incr!r}")
    if x_max < x_min:
        raise ValueError(f"Empty sampling range [{x_min}, {x_max}]")
    # small slack so x_max itself survives rounding in (x_max - x_min) / incr
    count = int(math.floor((x_max - x_min) / incr + 1e-9)) + 1
    return [x_min + k * incr for k in range(count)]


def sample_expression(
    expr: Expr,
    var: str = DEFAULT_VAR,
    xs: Optional[Sequence[float]] = None,
    compiled: bool = False,
) -> pd.DataFrame:
    """
    Evaluate expr at every x in xs (default: the full range at step 0.1).

    compiled=True JIT-compiles expr once with llvmlite and calls the native
    function for each point. Either way an unbound variable other than var
    raises UnboundVariable before any point is produced.
    """
    if xs is None:
        xs = sample_points()

    if compiled:
        fn = compile_expression(expr, params=(var,))
        ys = [fn(x) for x in xs]
    else:
        ys = [expr.evaluate({var: x}) for x in xs]

    return pd.DataFrame({"x": pd.Series(xs, dtype="float64"),
                         "y": pd.Series(ys, dtype="float64")})


# ---------------------------------------------------------------------------
# Graph rows
# ---------------------------------------------------------------------------

@dataclass
class GraphFunction:
    """
    The data behind one "y<n>=" row of the function table.

    The expression is re-parsed whenever the raw input changes and reused for
    every sampling pass after that.
    """

    index: int
    raw_input: str = ""
    checked: bool = True
    expression: Optional[Expr] = field(default=None, repr=False)
    var_name: str = DEFAULT_VAR

    @property
    def label(self) -> str:
        return f"y{self.index}="

    def set_raw_input(self, text: str) -> None:
        """Parse text and take it as this row's function. Raises CalcError."""
        expr = parse(text)
        names = free_variables(expr)
        if len(names) > 1:
            raise ParseError(
                f"A graphed function may use one variable, got {', '.join(names)}"
            )
        self.raw_input = text
        self.expression = expr
        self.var_name = names[0] if names else DEFAULT_VAR

    def sample(
        self,
        x_min: float = X_MIN,
        x_max: float = X_MAX,
        incr: Optional[float] = None,
        compiled: bool = False,
    ) -> pd.DataFrame:
        if self.expression is None:
            raise ParseError(f"Row {self.label} has no function to graph")
        if incr is None:
            incr = sample_increment(self.raw_input)
        xs = sample_points(x_min, x_max, incr)
        return sample_expression(self.expression, self.var_name, xs, compiled=compiled)
