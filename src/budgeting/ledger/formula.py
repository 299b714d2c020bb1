#!/usr/bin/env python3
"""
Cost Expression Evaluation

Cost cells hold either a number or a spreadsheet-style expression such as
``=12.50-R[1]C[0]`` or ``=1.0825*(0)``. This evaluator understands the subset
the split engine writes: decimal numbers, ``+ - * /``, parentheses, unary
signs and relative ``R[n]C[m]`` references. Arithmetic uses Decimal.
"""

import re
from collections.abc import Callable
from decimal import Decimal, InvalidOperation
from typing import Any

# Resolves a relative reference (row offset, column offset) to its value
Resolver = Callable[[int, int], Decimal]

_TOKEN = re.compile(
    r"\s*(?:(?P<number>\d+(?:\.\d*)?|\.\d+)"
    r"|(?P<ref>R\[(?P<row>[+-]?\d+)\]C\[(?P<col>[+-]?\d+)\])"
    r"|(?P<op>[-+*/()]))",
    re.IGNORECASE,
)


class FormulaError(ValueError):
    """Raised when a cost expression cannot be parsed or evaluated."""

    pass


def tokenize(expression: str) -> list[tuple[str, Any]]:
    tokens: list[tuple[str, Any]] = []
    position = 0
    expression = expression.rstrip()

    while position < len(expression):
        found = _TOKEN.match(expression, position)
        if not found or found.end() == position:
            raise FormulaError(f"Unexpected character at {position} in {expression!r}")
        position = found.end()

        if found.group("number") is not None:
            tokens.append(("number", Decimal(found.group("number"))))
        elif found.group("ref") is not None:
            tokens.append(("ref", (int(found.group("row")), int(found.group("col")))))
        else:
            tokens.append(("op", found.group("op")))

    return tokens


class _Parser:
    """Recursive-descent evaluator over a token list."""

    def __init__(self, tokens: list[tuple[str, Any]], resolve: Resolver | None):
        self.tokens = tokens
        self.position = 0
        self.resolve = resolve

    def peek(self) -> tuple[str, Any] | None:
        return self.tokens[self.position] if self.position < len(self.tokens) else None

    def take(self) -> tuple[str, Any]:
        token = self.peek()
        if token is None:
            raise FormulaError("Unexpected end of expression")
        self.position += 1
        return token

    def expression(self) -> Decimal:
        value = self.term()
        while (token := self.peek()) in (("op", "+"), ("op", "-")):
            self.take()
            value = value + self.term() if token[1] == "+" else value - self.term()
        return value

    def term(self) -> Decimal:
        value = self.factor()
        while (token := self.peek()) in (("op", "*"), ("op", "/")):
            self.take()
            right = self.factor()
            if token[1] == "*":
                value = value * right
            else:
                if right == 0:
                    raise FormulaError("Division by zero")
                value = value / right
        return value

    def factor(self) -> Decimal:
        kind, value = self.take()

        if kind == "number":
            return value
        if kind == "ref":
            if self.resolve is None:
                raise FormulaError("Relative references need a resolver")
            return self.resolve(*value)
        if value == "-":
            return -self.factor()
        if value == "+":
            return self.factor()
        if value == "(":
            inner = self.expression()
            if self.take() != ("op", ")"):
                raise FormulaError("Expected ')'")
            return inner

        raise FormulaError(f"Unexpected {value!r}")


def evaluate(expression: Any, resolve: Resolver | None = None) -> Decimal:
    """
    Evaluate a cost cell value.

    Args:
        expression: Blank, a number, a numeric string or an "=..." expression
        resolve: Callback for relative references

    Returns:
        Decimal value; blank cells evaluate to 0

    Raises:
        FormulaError: If the value is not a number or a supported expression
    """
    if expression is None or expression == "":
        return Decimal(0)
    if isinstance(expression, bool):
        raise FormulaError(f"Not a cost: {expression!r}")
    if isinstance(expression, (int, float, Decimal)):
        return Decimal(str(expression))

    text = str(expression).strip()
    if not text.startswith("="):
        try:
            return Decimal(text.replace("$", "").replace(",", ""))
        except InvalidOperation as e:
            raise FormulaError(f"Not a cost: {expression!r}") from e

    parser = _Parser(tokenize(text[1:]), resolve)
    result = parser.expression()
    if parser.peek() is not None:
        raise FormulaError(f"Unexpected {parser.peek()[1]!r} in {expression!r}")
    return result
