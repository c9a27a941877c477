import math
import sys
import unittest
from pathlib import Path

import llvmlite.binding as llvm

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT))

from calc_codegen_llvm import build_module_for_expression, compile_expression
from calc_core import UnboundVariable, parse, reciprocal
from calc_sampling import TRIG_INCREMENT, sample_expression, sample_points


def _jit_available() -> bool:
    try:
        llvm.check_jit_execution()
    except OSError:
        return False
    return True


class TestModuleBuild(unittest.TestCase):
    def test_ir_has_function_and_intrinsics(self):
        module = build_module_for_expression(parse("sin(x)^2 + sqrt(x)"))
        text = str(module)
        self.assertIn('define double @"calc_fn"(double %"x")', text)
        self.assertIn("llvm.sin.f64", text)
        self.assertIn("llvm.pow.f64", text)
        self.assertIn("llvm.sqrt.f64", text)

    def test_ir_parses(self):
        module = build_module_for_expression(parse("sec(x) + cot(x) + tan(x) - pi"))
        llvm_module = llvm.parse_assembly(str(module))
        llvm_module.verify()

    def test_multiple_params(self):
        module = build_module_for_expression(parse("x*y"), params=("x", "y"), func_name="mul")
        self.assertIn('define double @"mul"(double %"x", double %"y")', str(module))

    def test_unbound_variable(self):
        with self.assertRaises(UnboundVariable) as ctx:
            build_module_for_expression(parse("x + y"))
        self.assertEqual(ctx.exception.name, "y")


@unittest.skipUnless(_jit_available(), "host does not allow executable memory")
class TestCompiledExpression(unittest.TestCase):
    def test_matches_interpreter(self):
        cases = [
            "1/(sin(3.14)+x)",
            "x^3 - 2*x + 1",
            "2^3^2 + x",
            "sec(x) * csc(x) - cot(x)",
            "tan(x) + ln(abs(x)) - log(abs(x))",
            "exp(-x^2) / sqrt(abs(x) + 1)",
            "-(x - pi) / e",
        ]
        xs = [-3.5, -1.0, -0.25, 0.5, 1.0, 2.0, 10.0]
        for text in cases:
            expr = parse(text)
            fn = compile_expression(expr)
            for x in xs:
                with self.subTest(text=text, x=x):
                    expected = expr.evaluate({"x": x})
                    got = fn(x)
                    self.assertTrue(
                        math.isclose(got, expected, rel_tol=1e-9, abs_tol=1e-12),
                        f"{got!r} != {expected!r}",
                    )

    def test_special_values(self):
        fn = compile_expression(parse("1/x"))
        self.assertEqual(fn(0.0), math.inf)
        self.assertEqual(fn(-0.0), -math.inf)
        self.assertTrue(math.isnan(compile_expression(parse("x/x"))(0.0)))
        self.assertTrue(math.isnan(compile_expression(parse("sqrt(x)"))(-1.0)))
        self.assertTrue(math.isnan(compile_expression(parse("x^(1/3)"))(-8.0)))
        self.assertEqual(compile_expression(parse("ln(x)"))(0.0), -math.inf)

    def test_reciprocal_node(self):
        fn = compile_expression(reciprocal(parse("x + 1")))
        self.assertEqual(fn(3.0), 0.25)

    def test_evaluate_with_bindings(self):
        fn = compile_expression(parse("x - y"), params=("x", "y"))
        self.assertEqual(fn.evaluate({"x": 5.0, "y": 2.0}), 3.0)
        self.assertEqual(fn(1.0, 4.0), -3.0)
        with self.assertRaises(UnboundVariable):
            fn.evaluate({"x": 1.0})
        with self.assertRaises(TypeError):
            fn(1.0)

    def test_constant_expression(self):
        fn = compile_expression(parse("2 * pi"), params=())
        self.assertEqual(fn(), 2 * math.pi)

    def test_compiled_sampling_matches(self):
        xs = sample_points(incr=TRIG_INCREMENT)
        expr = parse("sin(x) / cos(x)")
        interp = sample_expression(expr, xs=xs)
        native = sample_expression(expr, xs=xs, compiled=True)
        self.assertEqual(len(native), len(interp))
        for a, b in zip(interp["y"], native["y"]):
            self.assertTrue(math.isclose(a, b, rel_tol=1e-9))


if __name__ == "__main__":
    unittest.main()
