#!/usr/bin/env python3
"""
LLVM code generator and JIT for calculator expressions.

Given an expression string like:

    sin(x) + 1
    1/(x^2 - 4)

we:

  1. Parse it into an Expr using calc_core
  2. Build an LLVM module with a function:

         double calc_fn(double x);

  3. Either emit the LLVM IR to a .ll file, or compile it in-process with
     MCJIT and call it through ctypes. The compiled form is what the grapher
     uses when sweeping one expression across thousands of x values.

Floating-point semantics match calc_core.eval_expr: fdiv gives inf / nan on
division by zero, and the math functions lower to the same libm routines.
"""

from __future__ import annotations

import argparse
import ctypes
from typing import Dict, Mapping, Optional, Sequence

import llvmlite.binding as llvm
from llvmlite import ir

from calc_core import (
    CONSTANTS,
    BinOp,
    Call,
    Const,
    EvalError,
    Expr,
    UnaryOp,
    UnboundVariable,
    Var,
    parse,
)

# Calculator function name -> LLVM intrinsic or libm symbol
_MATH_SYMBOLS: Dict[str, str] = {
    "sin": "llvm.sin.f64",
    "cos": "llvm.cos.f64",
    "sqrt": "llvm.sqrt.f64",
    "ln": "llvm.log.f64",
    "log": "llvm.log10.f64",
    "abs": "llvm.fabs.f64",
    "exp": "llvm.exp.f64",
    # no LLVM intrinsic for tan; call libm directly
    "tan": "tan",
}

# Reciprocal trig functions: 1.0 / <base>(x)
_RECIPROCAL_OF = {
    "sec": "cos",
    "csc": "sin",
    "cot": "tan",
}

# ---------------------------------------------------------------------------
# Expression codegen
# ---------------------------------------------------------------------------

def _declare_unary(module: ir.Module, symbol: str) -> ir.Function:
    fn = module.globals.get(symbol)
    if fn is None:
        double = ir.DoubleType()
        fn = ir.Function(module, ir.FunctionType(double, [double]), name=symbol)
    return fn


def _call_math(builder: ir.IRBuilder, module: ir.Module, func_name: str, arg: ir.Value) -> ir.Value:
    if func_name in _RECIPROCAL_OF:
        base = _call_math(builder, module, _RECIPROCAL_OF[func_name], arg)
        one = ir.Constant(ir.DoubleType(), 1.0)
        return builder.fdiv(one, base, name=f"{func_name}tmp")
    symbol = _MATH_SYMBOLS.get(func_name)
    if symbol is None:
        raise EvalError(f"No LLVM lowering for function {func_name!r}")
    return builder.call(_declare_unary(module, symbol), [arg], name=f"{func_name}tmp")


def codegen_expr(
    expr: Expr,
    builder: ir.IRBuilder,
    env: Mapping[str, ir.Value],
    module: ir.Module,
) -> ir.Value:
    """
    Generate LLVM IR for an Expr, returning an ir.Value (double).

    env: mapping from variable name -> ir.Value (function arguments)
    module: LLVM module (needed for pow / math calls)
    """
    double = ir.DoubleType()

    if isinstance(expr, Const):
        return ir.Constant(double, expr.value)

    if isinstance(expr, Var):
        if expr.name in env:
            return env[expr.name]
        if expr.name in CONSTANTS:
            return ir.Constant(double, CONSTANTS[expr.name])
        raise UnboundVariable(expr.name)

    if isinstance(expr, UnaryOp):
        val = codegen_expr(expr.operand, builder, env, module)
        if expr.op == "-":
            return builder.fneg(val, name="neg")
        if expr.op == "1/":
            return builder.fdiv(ir.Constant(double, 1.0), val, name="recip")
        raise EvalError(f"Unsupported unary op {expr.op!r}")

    if isinstance(expr, BinOp):
        left = codegen_expr(expr.left, builder, env, module)
        right = codegen_expr(expr.right, builder, env, module)

        if expr.op == "+":
            return builder.fadd(left, right, name="addtmp")
        if expr.op == "-":
            return builder.fsub(left, right, name="subtmp")
        if expr.op == "*":
            return builder.fmul(left, right, name="multmp")
        if expr.op == "/":
            return builder.fdiv(left, right, name="divtmp")
        if expr.op == "^":
            # Use llvm.pow.f64 intrinsic: double pow(double, double)
            pow_fn = module.globals.get("llvm.pow.f64")
            if pow_fn is None:
                pow_ty = ir.FunctionType(double, [double, double])
                pow_fn = ir.Function(module, pow_ty, name="llvm.pow.f64")
            return builder.call(pow_fn, [left, right], name="powtmp")

        raise EvalError(f"Unsupported binary op {expr.op!r}")

    if isinstance(expr, Call):
        arg = codegen_expr(expr.arg, builder, env, module)
        return _call_math(builder, module, expr.func_name, arg)

    raise EvalError(f"Unknown Expr node type: {type(expr)}")


# ---------------------------------------------------------------------------
# Function + module construction
# ---------------------------------------------------------------------------

def build_module_for_expression(
    expr: Expr,
    params: Sequence[str] = ("x",),
    func_name: str = "calc_fn",
    module_name: str = "calc_module",
) -> ir.Module:
    """
    Given an Expr, construct an LLVM module with a single function.

    Every parameter is a double, and the return type is double. Variables
    outside params (other than named constants) raise UnboundVariable.
    """
    double = ir.DoubleType()
    module = ir.Module(name=module_name)

    fn_ty = ir.FunctionType(double, [double for _ in params])
    fn = ir.Function(module, fn_ty, name=func_name)

    env: Dict[str, ir.Value] = {}
    for arg, param_name in zip(fn.args, params):
        arg.name = param_name
        env[param_name] = arg

    block = fn.append_basic_block(name="entry")
    builder = ir.IRBuilder(block)

    ret_val = codegen_expr(expr, builder, env, module)
    builder.ret(ret_val)

    return module


# ---------------------------------------------------------------------------
# In-process JIT
# ---------------------------------------------------------------------------

_native_ready = False


def _create_target_machine() -> llvm.TargetMachine:
    global _native_ready
    if not _native_ready:
        llvm.initialize_native_target()
        llvm.initialize_native_asmprinter()
        _native_ready = True
    return llvm.Target.from_default_triple().create_target_machine()


class CompiledExpression:
    """
    A native version of one Expr.

    Holds the MCJIT engine for as long as the object lives; the ctypes
    wrapper points into memory owned by that engine.
    """

    def __init__(self, expr: Expr, params: Sequence[str] = ("x",), func_name: str = "calc_fn"):
        self.expr = expr
        self.params = tuple(params)
        self.ir_module = build_module_for_expression(expr, self.params, func_name)

        llvm_module = llvm.parse_assembly(str(self.ir_module))
        llvm_module.verify()
        # the engine takes ownership of the target machine
        self._engine = llvm.create_mcjit_compiler(llvm_module, _create_target_machine())
        self._engine.finalize_object()

        address = self._engine.get_function_address(func_name)
        cfunc_ty = ctypes.CFUNCTYPE(ctypes.c_double, *([ctypes.c_double] * len(self.params)))
        self._cfunc = cfunc_ty(address)

    def __call__(self, *args: float) -> float:
        if len(args) != len(self.params):
            raise TypeError(
                f"Compiled expression takes {len(self.params)} argument(s), got {len(args)}"
            )
        return self._cfunc(*args)

    def evaluate(self, bindings: Optional[Mapping[str, float]] = None) -> float:
        bindings = bindings or {}
        args = []
        for name in self.params:
            if name not in bindings:
                raise UnboundVariable(name)
            args.append(float(bindings[name]))
        return self._cfunc(*args)


def compile_expression(expr: Expr, params: Sequence[str] = ("x",)) -> CompiledExpression:
    return CompiledExpression(expr, params)


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

def parse_args():
    p = argparse.ArgumentParser(
        description="Generate LLVM IR (.ll) from a calculator expression."
    )
    p.add_argument(
        "expression",
        help='Expression, e.g. "sin(x) + 1"',
    )
    p.add_argument(
        "--out",
        "-o",
        required=True,
        help="Output .ll file path.",
    )
    p.add_argument(
        "--param",
        dest="params",
        action="append",
        default=None,
        help="Function parameter name (repeatable, default: x).",
    )
    p.add_argument(
        "--module-name",
        default="calc_module",
        help="Optional LLVM module name.",
    )
    return p.parse_args()


def main():
    args = parse_args()
    params = args.params or ["x"]

    expr = parse(args.expression)
    module = build_module_for_expression(expr, params, module_name=args.module_name)

    with open(args.out, "w", encoding="utf-8") as f:
        f.write(str(module))
    print(f"[INFO] Wrote LLVM IR for {args.expression!r} to {args.out}")


if __name__ == "__main__":
    main()
