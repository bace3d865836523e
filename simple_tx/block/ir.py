"""Statements of a transaction block, as plain ``ast`` fragments."""

import ast
from dataclasses import dataclass, field


@dataclass(frozen=True)
class Bind:
    """
    Run ``expr`` against the context and match the outcome against ``pattern``.

    With a ``condition``, ``expr`` only runs when the condition holds; otherwise
    the statement contributes ``Ok(None)``.
    """

    pattern: ast.pattern
    expr: ast.expr
    condition: ast.expr | None = None


@dataclass(frozen=True)
class Let:
    """An ordinary statement, executed as is."""

    node: ast.stmt


@dataclass(frozen=True)
class Result:
    """The final expression of a block."""

    expr: ast.expr


Statement = Bind | Let | Result


@dataclass(frozen=True)
class Block:
    statements: list[Statement]
    else_clauses: list[ast.match_case] = field(default_factory=list)
    docstring: ast.stmt | None = None
