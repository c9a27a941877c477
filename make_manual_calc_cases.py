#!/usr/bin/env python3
import argparse
import json
from pathlib import Path

CASES = [
    # ----- Arithmetic & precedence -----
    ("arith_1", "1 + 2 * 3"),
    ("arith_2", "10 - 2 - 3"),
    ("arith_3", "(1 + 2) * 3"),
    ("arith_4", "8 / 4 / 2"),
    ("arith_5", "-(4 - 1) * 2"),
    ("arith_6", "x * x - 3 * x + 2"),

    # ----- Powers -----
    ("power_1", "2^3^2"),         # 2^(3^2) with right-assoc ^
    ("power_2", "-2^2"),          # -(2^2)
    ("power_3", "x^2 - 4"),
    ("power_4", "x^0.5"),         # nan for x < 0

    # ----- Division by zero / poles -----
    ("pole_1", "1/0"),
    ("pole_2", "0/0"),
    ("pole_3", "1/x"),
    ("pole_4", "1/(x^2 - 4)"),

    # ----- Trig -----
    ("trig_1", "sin(x)"),
    ("trig_2", "1/(sin(3.14)+x)"),
    ("trig_3", "sec(x)"),
    ("trig_4", "csc(x) + cot(x)"),
    ("trig_5", "tan(pi * x / 4)"),

    # ----- Other functions -----
    ("func_1", "sqrt(x)"),
    ("func_2", "ln(abs(x))"),
    ("func_3", "log(x)"),
    ("func_4", "exp(-x^2)"),

    # ----- Rejected input -----
    ("bad_1", "1..2"),
    ("bad_2", "(1+2"),
    ("bad_3", "sin"),
    ("bad_4", "2x"),
    ("bad_5", "x + y"),
]


def parse_args():
    p = argparse.ArgumentParser(
        description="Write hand-written calculator expressions to a JSONL file."
    )
    p.add_argument(
        "--out",
        dest="out_path",
        default="manual_calc_cases.jsonl",
        help="Output JSONL (default: manual_calc_cases.jsonl).",
    )
    return p.parse_args()


def main():
    args = parse_args()
    out = Path(args.out_path)
    with out.open("w", encoding="utf-8") as f:
        for id_, expression in CASES:
            rec = {
                "id": id_,
                "expression": expression,
            }
            f.write(json.dumps(rec, ensure_ascii=False) + "\n")
    print(f"Wrote {len(CASES)} cases to {out}")


if __name__ == "__main__":
    main()
