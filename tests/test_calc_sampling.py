import math
import sys
import unittest
from pathlib import Path

import pandas as pd

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from calc_core import LexError, ParseError, UnboundVariable, parse
from calc_sampling import (
    DEFAULT_INCREMENT,
    TRIG_INCREMENT,
    GraphFunction,
    is_trig_func,
    sample_expression,
    sample_increment,
    sample_points,
)


class TestSamplingPolicy(unittest.TestCase):
    def test_trig_detection(self):
        for text in ("sin(x)", "2*cos(x)", "tan(x)+1", "sec(x)", "csc(x)", "cot(x)"):
            with self.subTest(text=text):
                self.assertTrue(is_trig_func(text))
        self.assertFalse(is_trig_func("x^2 - 4"))
        self.assertFalse(is_trig_func("sqrt(x)"))

    def test_increment(self):
        self.assertEqual(sample_increment("sin(x)"), math.pi / 18)
        self.assertEqual(sample_increment("x^2"), 0.1)

    def test_points_cover_range(self):
        xs = sample_points(-1.0, 1.0, 0.5)
        self.assertEqual(xs, [-1.0, -0.5, 0.0, 0.5, 1.0])

    def test_default_range_counts(self):
        self.assertEqual(len(sample_points(incr=DEFAULT_INCREMENT)), 2001)
        self.assertEqual(len(sample_points(incr=TRIG_INCREMENT)), 1146)
        xs = sample_points(incr=DEFAULT_INCREMENT)
        self.assertAlmostEqual(xs[-1], 100.0, places=9)

    def test_bad_increment(self):
        with self.assertRaises(ValueError):
            sample_points(incr=0.0)
        with self.assertRaises(ValueError):
            sample_points(1.0, -1.0, 0.1)


class TestSampleExpression(unittest.TestCase):
    def test_dataframe_shape(self):
        df = sample_expression(parse("x^2"), xs=[-2.0, 0.0, 3.0])
        self.assertIsInstance(df, pd.DataFrame)
        self.assertEqual(list(df.columns), ["x", "y"])
        self.assertEqual(df["y"].tolist(), [4.0, 0.0, 9.0])

    def test_poles_are_kept(self):
        df = sample_expression(parse("1/x"), xs=[-1.0, 0.0, 1.0])
        self.assertEqual(df["y"].tolist(), [-1.0, math.inf, 1.0])
        df = sample_expression(parse("sqrt(x)"), xs=[-1.0, 4.0])
        self.assertTrue(math.isnan(df.at[0, "y"]))
        self.assertEqual(df.at[1, "y"], 2.0)

    def test_sine_sweep(self):
        xs = sample_points(incr=TRIG_INCREMENT)
        df = sample_expression(parse("sin(x)"), xs=xs)
        self.assertEqual(len(df), len(xs))
        self.assertTrue(df["y"].between(-1.0, 1.0).all())

    def test_secant_sweep_has_no_exceptions(self):
        xs = sample_points(incr=TRIG_INCREMENT)
        df = sample_expression(parse("sec(x) + csc(x) + cot(x)"), xs=xs)
        self.assertEqual(len(df), len(xs))

    def test_other_variable_unbound(self):
        with self.assertRaises(UnboundVariable):
            sample_expression(parse("x + y"), xs=[0.0])

    def test_custom_variable(self):
        df = sample_expression(parse("2*t"), var="t", xs=[1.0, 2.0])
        self.assertEqual(df["y"].tolist(), [2.0, 4.0])


class TestGraphFunction(unittest.TestCase):
    def test_label(self):
        self.assertEqual(GraphFunction(index=0).label, "y0=")
        self.assertEqual(GraphFunction(index=3).label, "y3=")

    def test_set_raw_input_picks_variable(self):
        row = GraphFunction(index=0)
        row.set_raw_input("t^2 + pi")
        self.assertEqual(row.var_name, "t")
        self.assertEqual(row.raw_input, "t^2 + pi")
        row.set_raw_input("42")
        self.assertEqual(row.var_name, "x")

    def test_reparse_on_edit(self):
        row = GraphFunction(index=0)
        row.set_raw_input("x")
        first = row.sample(-1.0, 1.0, 1.0)
        row.set_raw_input("2*x")
        second = row.sample(-1.0, 1.0, 1.0)
        self.assertEqual(first["y"].tolist(), [-1.0, 0.0, 1.0])
        self.assertEqual(second["y"].tolist(), [-2.0, 0.0, 2.0])

    def test_bad_input_keeps_previous_function(self):
        row = GraphFunction(index=0)
        row.set_raw_input("x + 1")
        with self.assertRaises(LexError):
            row.set_raw_input("1..2")
        with self.assertRaises(ParseError):
            row.set_raw_input("x + y")
        self.assertEqual(row.raw_input, "x + 1")
        self.assertEqual(row.expression.evaluate({"x": 1.0}), 2.0)

    def test_sample_uses_trig_increment(self):
        row = GraphFunction(index=1)
        row.set_raw_input("sin(x)")
        self.assertEqual(len(row.sample()), 1146)
        row.set_raw_input("x")
        self.assertEqual(len(row.sample()), 2001)

    def test_empty_row(self):
        with self.assertRaises(ParseError):
            GraphFunction(index=0).sample()


if __name__ == "__main__":
    unittest.main()
