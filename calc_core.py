#!/usr/bin/env python3
"""
Core lexer, parser and evaluator for the calculator/grapher.

We parse user-typed arithmetic strings such as:

    1/(sin(3.14)+x)
    -(2^3^2 - 1) / 4
    sec(x) * ln(x)

into an immutable AST:

    BinOp(op='/', left=Const(1.0), right=BinOp(op='+', ...))

and evaluate that AST against a fresh variable binding for every call, so one
parse can be swept across a graphing range.

Grammar (informal):

    expression    -> term (('+' | '-') term)*
    term          -> unary (('*' | '/') unary)*
    unary         -> '-' unary | power
    power         -> factor ('^' power)?        # right-associative
    factor        -> NUMBER
                   | IDENT
                   | FUNC_NAME '(' expression ')'
                   | '(' expression ')'

Implicit multiplication is not part of the grammar: "2x" and "2(3)" are
rejected, write "2*x" and "2*(3)".
"""

from __future__ import annotations

import functools
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Callable, Dict, List, Mapping, Optional, Set, Union

# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------

class CalcError(Exception):
    """Base class for every failure raised by the engine."""


class LexError(CalcError):
    def __init__(self, message: str, pos: Optional[int] = None):
        super().__init__(message)
        self.pos = pos


class ParseError(CalcError):
    def __init__(self, message: str, pos: Optional[int] = None):
        super().__init__(message)
        self.pos = pos


class EvalError(CalcError):
    pass


class UnboundVariable(EvalError):
    """A variable has no value in the supplied bindings."""

    def __init__(self, name: str):
        super().__init__(f"Unbound variable {name!r}")
        self.name = name


# ---------------------------------------------------------------------------
# IEEE-754 arithmetic helpers
#
# Python raises on x/0, math domain errors and pow overflow. The calculator
# wants the floating-point answer instead (inf / nan) and leaves the
# "Undefined" decision to the display layer.
# ---------------------------------------------------------------------------

def _divide(a: float, b: float) -> float:
    try:
        return a / b
    except ZeroDivisionError:
        if a == 0.0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    except OverflowError:
        return math.copysign(math.inf, a) * math.copysign(1.0, b)


def _is_odd_integer(x: float) -> bool:
    return math.isfinite(x) and x == math.floor(x) and math.fmod(x, 2.0) != 0.0


def _power(a: float, b: float) -> float:
    try:
        return math.pow(a, b)
    except OverflowError:
        if a < 0 and _is_odd_integer(b):
            return -math.inf
        return math.inf
    except ValueError:
        # 0 ** negative is a pole, anything else is a negative base with a
        # non-integer exponent.
        if a == 0.0 and b < 0:
            return math.copysign(math.inf, a) if _is_odd_integer(b) else math.inf
        return math.nan


def _ieee(fn: Callable[[float], float]) -> Callable[[float], float]:
    """Wrap a math function so domain errors give nan and overflow gives inf."""

    @functools.wraps(fn)
    def wrapper(x: float) -> float:
        try:
            return fn(x)
        except ValueError:
            return math.nan
        except OverflowError:
            return math.inf

    return wrapper


def _ln(x: float) -> float:
    if x == 0.0:
        return -math.inf
    return math.log(x)


def _log10(x: float) -> float:
    if x == 0.0:
        return -math.inf
    return math.log10(x)


# ---------------------------------------------------------------------------
# Function and constant tables
# ---------------------------------------------------------------------------

FUNCTIONS: Dict[str, Callable[[float], float]] = {
    "sin": _ieee(math.sin),
    "cos": _ieee(math.cos),
    "tan": _ieee(math.tan),
    "sec": _ieee(lambda x: _divide(1.0, math.cos(x))),
    "csc": _ieee(lambda x: _divide(1.0, math.sin(x))),
    "cot": _ieee(lambda x: _divide(1.0, math.tan(x))),
    "sqrt": _ieee(math.sqrt),
    "ln": _ieee(_ln),
    "log": _ieee(_log10),
    "abs": math.fabs,
    "exp": _ieee(math.exp),
}

TRIG_FUNCTIONS = ("sin", "cos", "tan", "sec", "csc", "cot")

CONSTANTS: Dict[str, float] = {
    "pi": math.pi,
    "e": math.e,
}

OPERATORS = "+-*/^"

# ---------------------------------------------------------------------------
# AST definitions
# ---------------------------------------------------------------------------

class Expr:
    """Base class for expressions."""

    def evaluate(self, bindings: Optional[Mapping[str, float]] = None) -> float:
        return eval_expr(self, bindings or {})

    def __str__(self) -> str:
        return format_expr(self)


@dataclass(frozen=True)
class Var(Expr):
    name: str


@dataclass(frozen=True)
class Const(Expr):
    value: float


@dataclass(frozen=True)
class UnaryOp(Expr):
    op: str   # '-' or '1/'
    operand: Expr


@dataclass(frozen=True)
class BinOp(Expr):
    op: str   # '+', '-', '*', '/', '^'
    left: Expr
    right: Expr


@dataclass(frozen=True)
class Call(Expr):
    func_name: str
    arg: Expr


def negate(expr: Expr) -> Expr:
    """Same value as parsing "-(<expr>)", without the text round trip."""
    return UnaryOp(op="-", operand=expr)


def reciprocal(expr: Expr) -> Expr:
    """Same value as parsing "1/(<expr>)", without the text round trip."""
    return UnaryOp(op="1/", operand=expr)


# ---------------------------------------------------------------------------
# Tokenizer
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Token:
    kind: str   # 'NUMBER', 'IDENT', 'OP', 'LPAREN', 'RPAREN', 'EOF'
    value: Union[str, float]
    pos: int = 0

    def __repr__(self) -> str:
        return f"Token({self.kind!r}, {self.value!r})"


def _is_letter(c: str) -> bool:
    return ("a" <= c <= "z") or ("A" <= c <= "Z")


def tokenize_expr(src: str) -> List[Token]:
    """
    Turn an arithmetic string into a flat list of tokens.

    - Numbers: maximal runs of digits and '.', e.g. 42, 3.14, .5
    - Identifiers: maximal runs of ASCII letters
    - Operators: single characters in +-*/^
    - Parentheses
    """
    tokens: List[Token] = []
    i = 0
    n = len(src)

    while i < n:
        c = src[i]

        if c.isspace():
            i += 1
            continue

        if c.isdigit() or c == ".":
            j = i
            while j < n and (src[j].isdigit() or src[j] == "."):
                j += 1
            text = src[i:j]
            if text.count(".") > 1 or not any(ch.isdigit() for ch in text):
                raise LexError(f"Malformed number {text!r} at position {i}", i)
            # isdigit() accepts non-ASCII digits that float() may reject
            try:
                value = float(text)
            except ValueError:
                raise LexError(f"Malformed number {text!r} at position {i}", i) from None
            if not math.isfinite(value):
                raise LexError(f"Number {text!r} at position {i} is out of range", i)
            tokens.append(Token("NUMBER", value, i))
            i = j
            continue

        if _is_letter(c):
            j = i + 1
            while j < n and _is_letter(src[j]):
                j += 1
            tokens.append(Token("IDENT", src[i:j], i))
            i = j
            continue

        if c in OPERATORS:
            tokens.append(Token("OP", c, i))
            i += 1
            continue

        if c == "(":
            tokens.append(Token("LPAREN", c, i))
            i += 1
            continue

        if c == ")":
            tokens.append(Token("RPAREN", c, i))
            i += 1
            continue

        raise LexError(f"Unexpected character {c!r} at position {i}", i)

    tokens.append(Token("EOF", "", n))
    return tokens


# ---------------------------------------------------------------------------
# Recursive-descent parser
# ---------------------------------------------------------------------------

class Parser:
    def __init__(self, tokens: List[Token]):
        self.tokens = tokens
        self.pos = 0

    @property
    def current(self) -> Token:
        return self.tokens[self.pos]

    def consume(self, expected_kind: Optional[str] = None,
                expected_value: Optional[str] = None) -> Token:
        tok = self.current
        if expected_kind is not None and tok.kind != expected_kind:
            raise ParseError(
                f"Expected {expected_kind}, got {_describe(tok)} at position {tok.pos}",
                tok.pos,
            )
        if expected_value is not None and tok.value != expected_value:
            raise ParseError(
                f"Expected {expected_value!r}, got {_describe(tok)} at position {tok.pos}",
                tok.pos,
            )
        if tok.kind != "EOF":
            self.pos += 1
        return tok

    def match(self, kind: str, value: Optional[str] = None) -> bool:
        tok = self.current
        if tok.kind != kind:
            return False
        if value is not None and tok.value != value:
            return False
        return True

    def match_op(self, *symbols: str) -> bool:
        return self.current.kind == "OP" and self.current.value in symbols

    # expression  -> term (('+' | '-') term)*
    def parse_expr(self) -> Expr:
        node = self.parse_term()
        while self.match_op("+", "-"):
            op = self.consume("OP").value
            right = self.parse_term()
            node = BinOp(op=op, left=node, right=right)
        return node

    # term        -> unary (('*' | '/') unary)*
    def parse_term(self) -> Expr:
        node = self.parse_unary()
        while self.match_op("*", "/"):
            op = self.consume("OP").value
            right = self.parse_unary()
            node = BinOp(op=op, left=node, right=right)
        return node

    # unary       -> '-' unary | power
    def parse_unary(self) -> Expr:
        if self.match("OP", "-"):
            self.consume("OP", "-")
            operand = self.parse_unary()
            return UnaryOp(op="-", operand=operand)
        return self.parse_power()

    # power       -> factor ('^' power)?   # right-associative
    def parse_power(self) -> Expr:
        left = self.parse_factor()
        if self.match("OP", "^"):
            self.consume("OP", "^")
            # the exponent may itself carry a sign: 2^-1
            right = self.parse_unary()
            return BinOp(op="^", left=left, right=right)
        return left

    # factor      -> NUMBER | IDENT | FUNC_NAME '(' expression ')' | '(' expression ')'
    def parse_factor(self) -> Expr:
        tok = self.current

        if tok.kind == "NUMBER":
            self.consume("NUMBER")
            return Const(tok.value)

        if tok.kind == "IDENT":
            name = self.consume("IDENT").value
            if name in FUNCTIONS:
                if not self.match("LPAREN"):
                    raise ParseError(
                        f"Function {name!r} must be followed by '(' at position {self.current.pos}",
                        self.current.pos,
                    )
                self.consume("LPAREN")
                arg = self.parse_expr()
                self.expect_close(tok.pos)
                return Call(func_name=name, arg=arg)
            if self.match("LPAREN"):
                raise ParseError(f"Unknown function {name!r} at position {tok.pos}", tok.pos)
            return Var(name=name)

        if tok.kind == "LPAREN":
            self.consume("LPAREN")
            expr = self.parse_expr()
            self.expect_close(tok.pos)
            return expr

        if tok.kind == "EOF":
            raise ParseError(f"Unexpected end of input at position {tok.pos}", tok.pos)
        raise ParseError(f"Unexpected {_describe(tok)} at position {tok.pos}", tok.pos)

    def expect_close(self, open_pos: int) -> None:
        if not self.match("RPAREN"):
            raise ParseError(f"Unmatched '(' at position {open_pos}", open_pos)
        self.consume("RPAREN")


def _describe(tok: Token) -> str:
    if tok.kind == "EOF":
        return "end of input"
    if tok.kind == "NUMBER":
        return f"number {tok.value!r}"
    return f"{tok.value!r}"


def parse_tokens(tokens: List[Token]) -> Expr:
    """Parse a complete token list; trailing tokens are an error."""
    if not tokens or tokens[0].kind == "EOF":
        raise ParseError("Expression is empty", 0)
    parser = Parser(tokens)
    try:
        expr = parser.parse_expr()
    except RecursionError:
        raise ParseError("Expression is nested too deeply") from None
    if not parser.match("EOF"):
        tok = parser.current
        if tok.kind == "RPAREN":
            raise ParseError(f"Unmatched ')' at position {tok.pos}", tok.pos)
        raise ParseError(f"Unexpected {_describe(tok)} at position {tok.pos}", tok.pos)
    return expr


def parse(text: str) -> Expr:
    """Parse arithmetic text into an Expr. Raises LexError or ParseError."""
    return parse_tokens(tokenize_expr(text))


def parse_and_evaluate(text: str, bindings: Optional[Mapping[str, float]] = None) -> float:
    """One-shot parse + evaluate, with no variables bound unless given."""
    return parse(text).evaluate(bindings)


# ---------------------------------------------------------------------------
# Evaluator
# ---------------------------------------------------------------------------

def eval_expr(expr: Expr, env: Mapping[str, float]) -> float:
    """
    Evaluate an Expr for the given variable environment.

    - env: mapping from variable name -> float, looked up before CONSTANTS
    - Division by zero, pow overflow and domain errors give inf / nan.
    """
    if isinstance(expr, Const):
        return expr.value

    if isinstance(expr, Var):
        if expr.name in env:
            return float(env[expr.name])
        if expr.name in CONSTANTS:
            return CONSTANTS[expr.name]
        raise UnboundVariable(expr.name)

    if isinstance(expr, BinOp):
        left = eval_expr(expr.left, env)
        right = eval_expr(expr.right, env)

        if expr.op == "+":
            return left + right
        if expr.op == "-":
            return left - right
        if expr.op == "*":
            return left * right
        if expr.op == "/":
            return _divide(left, right)
        if expr.op == "^":
            return _power(left, right)

        raise EvalError(f"Unsupported binary op {expr.op!r}")

    if isinstance(expr, UnaryOp):
        val = eval_expr(expr.operand, env)
        if expr.op == "-":
            return -val
        if expr.op == "1/":
            return _divide(1.0, val)
        raise EvalError(f"Unsupported unary op {expr.op!r}")

    if isinstance(expr, Call):
        fn = FUNCTIONS.get(expr.func_name)
        if fn is None:
            raise EvalError(f"Unknown function {expr.func_name!r}")
        return fn(eval_expr(expr.arg, env))

    raise EvalError(f"Unknown Expr node type: {type(expr)}")


# ---------------------------------------------------------------------------
# Tree utilities
# ---------------------------------------------------------------------------

def free_variables(expr: Expr) -> List[str]:
    """Sorted names the expression needs bound (named constants excluded)."""
    out: Set[str] = set()
    _collect_vars(expr, out)
    return sorted(out - set(CONSTANTS))


def _collect_vars(expr: Expr, out: Set[str]) -> None:
    if isinstance(expr, Var):
        out.add(expr.name)
    elif isinstance(expr, UnaryOp):
        _collect_vars(expr.operand, out)
    elif isinstance(expr, BinOp):
        _collect_vars(expr.left, out)
        _collect_vars(expr.right, out)
    elif isinstance(expr, Call):
        _collect_vars(expr.arg, out)


def _format_number(value: float) -> str:
    if not math.isfinite(value):
        raise ValueError(f"Cannot render non-finite literal {value!r}")
    text = repr(value)
    if "e" in text or "E" in text:
        # the lexer has no exponent notation
        text = format(Decimal(text), "f")
    return text


def format_expr(expr: Expr) -> str:
    """Render an Expr back to text that parses to an equivalent tree."""
    if isinstance(expr, Const):
        text = _format_number(abs(expr.value))
        return f"(-{text})" if math.copysign(1.0, expr.value) < 0 else text
    if isinstance(expr, Var):
        return expr.name
    if isinstance(expr, UnaryOp):
        return f"({expr.op}{format_expr(expr.operand)})"
    if isinstance(expr, BinOp):
        return f"({format_expr(expr.left)} {expr.op} {format_expr(expr.right)})"
    if isinstance(expr, Call):
        return f"{expr.func_name}({format_expr(expr.arg)})"
    raise TypeError(f"Unknown Expr node type: {type(expr)}")


# ---------------------------------------------------------------------------
# Tiny manual test harness
# ---------------------------------------------------------------------------

if __name__ == "__main__":
    tests = [
        "1/(sin(3.14)+x)",
        "2^3^2",
        "10-2-3",
        "-(4 - 1) * 2",
        "1/0",
        "sec(pi/2)",
        "1..2",
        "(1+2",
        "sin",
    ]
    for t in tests:
        print("====", t)
        try:
            e = parse(t)
            print(e)
            print("=", e.evaluate({"x": 1.0}))
        except CalcError as err:
            print(type(err).__name__ + ":", err)
