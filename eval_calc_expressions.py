#!/usr/bin/env python3
"""
Cross-check the interpreted evaluator against the LLVM-compiled one.

For each record in a JSONL file (default: manual_calc_cases.jsonl) with field
    "expression": "1/(x^2 - 4)"

we:

  1. Parse it with calc_core.parse
  2. Pick the graphing variable (the single free variable, default x)
  3. Sample it over the standard graph range with the tree-walking evaluator
  4. Sample it again through calc_codegen_llvm's MCJIT-compiled function
  5. Compare the two point sets (nan matches nan, inf matches inf of the same
     sign, finite values within a relative tolerance)

Statuses: ok, lex_error, parse_error, unsupported (more than one free
variable), compile_error, mismatch.

Usage:

    python make_manual_calc_cases.py --out manual_calc_cases.jsonl
    python eval_calc_expressions.py \
        --in manual_calc_cases.jsonl \
        --max-expressions 20
"""

from __future__ import annotations

import argparse
import json
import math
import statistics
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional

import pandas as pd

from calc_core import EvalError, LexError, ParseError, free_variables, parse
from calc_sampling import DEFAULT_VAR, sample_expression, sample_increment, sample_points


@dataclass
class EvalResult:
    record_id: str
    expression: str
    status: str      # "ok", "lex_error", "parse_error", "unsupported", "compile_error", "mismatch"
    detail: str = ""
    n_points: int = 0
    timings: Dict[str, float] = field(default_factory=dict)


def compare_samples(
    expected: pd.DataFrame,
    got: pd.DataFrame,
    rel_tol: float = 1e-9,
    abs_tol: float = 1e-12,
) -> pd.Series:
    """Boolean Series, True where the two y columns agree."""
    ya = expected["y"]
    yb = got["y"]
    same = (ya == yb) | (ya.isna() & yb.isna())
    finite = (ya.abs() < math.inf) & (yb.abs() < math.inf)
    scale = pd.concat([ya.abs(), yb.abs()], axis=1).max(axis=1)
    close = finite & ((ya - yb).abs() <= rel_tol * scale + abs_tol)
    return same | close


def evaluate_expression(expression: str, record_id: str) -> EvalResult:
    # 1) Parse
    try:
        expr = parse(expression)
    except LexError as e:
        return EvalResult(record_id, expression, "lex_error", str(e))
    except ParseError as e:
        return EvalResult(record_id, expression, "parse_error", str(e))

    # 2) Graphing variable
    names = free_variables(expr)
    if len(names) > 1:
        return EvalResult(
            record_id,
            expression,
            "unsupported",
            f"More than one free variable: {', '.join(names)}",
        )
    var = names[0] if names else DEFAULT_VAR
    xs = sample_points(incr=sample_increment(expression))

    # 3) Interpreted sampling
    start_t = time.perf_counter()
    interp = sample_expression(expr, var, xs)
    interp_t = time.perf_counter() - start_t

    # 4) Compiled sampling (compile time included)
    start_t = time.perf_counter()
    try:
        native = sample_expression(expr, var, xs, compiled=True)
    except (EvalError, RuntimeError) as e:
        return EvalResult(record_id, expression, "compile_error", str(e), len(xs))
    native_t = time.perf_counter() - start_t

    timings = {"interpreted": interp_t, "compiled": native_t}

    # 5) Compare
    agree = compare_samples(interp, native)
    if not agree.all():
        bad = interp[~agree].index[0]
        detail = (
            f"{int((~agree).sum())} of {len(agree)} points differ; first at "
            f"{var}={interp.at[bad, 'x']!r}: interpreted={interp.at[bad, 'y']!r} "
            f"compiled={native.at[bad, 'y']!r}"
        )
        return EvalResult(record_id, expression, "mismatch", detail, len(xs), timings)

    n_special = int(interp["y"].isna().sum() + (interp["y"].abs() == math.inf).sum())
    detail = f"{len(xs)} points, {n_special} nan/inf"
    return EvalResult(record_id, expression, "ok", detail, len(xs), timings)


# ---------------------------------------------------------------------------
# CLI driver
# ---------------------------------------------------------------------------

def parse_args():
    p = argparse.ArgumentParser(
        description="Cross-check interpreted vs LLVM-compiled evaluation on expressions from a JSONL file."
    )
    p.add_argument(
        "--in",
        dest="in_path",
        default="manual_calc_cases.jsonl",
        help="Input JSONL with 'expression' (default: manual_calc_cases.jsonl).",
    )
    p.add_argument(
        "--max-expressions",
        type=int,
        default=1000,
        help="Maximum number of expressions to evaluate (default: 1000).",
    )
    return p.parse_args()


def load_records(in_path: Path, max_records: Optional[int] = None) -> List[dict]:
    out = []
    with in_path.open("r", encoding="utf-8") as fin:
        for line in fin:
            if max_records is not None and len(out) >= max_records:
                break
            if not line.strip():
                continue
            rec = json.loads(line)
            if not rec.get("expression"):
                continue
            out.append(rec)
    return out


def main():
    args = parse_args()
    in_path = Path(args.in_path)

    print(f"[INFO] Loading expressions from {in_path}")
    records = load_records(in_path, args.max_expressions)

    results: List[EvalResult] = []
    for idx, rec in enumerate(records):
        record_id = str(rec.get("id", idx))
        res = evaluate_expression(rec["expression"], record_id)
        results.append(res)
        print(f"[{res.status.upper()}] {record_id}: {res.expression}")

    # Summary
    counts: Dict[str, int] = {}
    for r in results:
        counts[r.status] = counts.get(r.status, 0) + 1

    print("\n=== Summary ===")
    print(f"Total evaluated (up to max): {len(results)}")
    for status, count in sorted(counts.items()):
        print(f"  {status}: {count}")

    for r in results:
        if r.status != "ok":
            print(f"\n--- {r.status.upper()} for {r.record_id} ---")
            print(f"Expression: {r.expression}")
            print(f"Detail: {r.detail}")

    # --- Performance summary ---
    print("\n=== Performance summary (per expression) ===")
    timed = [r for r in results if r.timings]
    if timed:
        for kind in ("interpreted", "compiled"):
            values = [r.timings[kind] for r in timed]
            print(
                f"{kind:<12} avg {statistics.mean(values) * 1000:.2f} ms, "
                f"median {statistics.median(values) * 1000:.2f} ms, "
                f"max {max(values) * 1000:.2f} ms"
            )
        total_points = sum(r.n_points for r in timed)
        print(f"Points sampled per evaluator: {total_points}")
    else:
        print("No expressions reached sampling.")


if __name__ == "__main__":
    main()
