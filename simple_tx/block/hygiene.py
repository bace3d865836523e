"""Fresh names for generated code."""

import ast
from collections.abc import Iterable


def collect_names(*nodes: ast.AST) -> set[str]:
    """Every identifier bound or referenced anywhere under ``nodes``."""
    names: set[str] = set()
    for node in nodes:
        for child in ast.walk(node):
            match child:
                case ast.Name(id=name) | ast.arg(arg=name):
                    names.add(name)
                case ast.FunctionDef(name=name) | ast.AsyncFunctionDef(name=name) | ast.ClassDef(name=name):
                    names.add(name)
                case ast.alias(name=name, asname=asname):
                    names.add(asname or name.split(".")[0])
                case ast.Global(names=declared) | ast.Nonlocal(names=declared):
                    names.update(declared)
                case ast.MatchAs(name=str() as name) | ast.MatchStar(name=str() as name):
                    names.add(name)
                case ast.MatchMapping(rest=str() as name) | ast.ExceptHandler(name=str() as name):
                    names.add(name)
    return names


def collect_targets(*nodes: ast.AST) -> set[str]:
    """Identifiers assigned anywhere under ``nodes``, minus those declared global or nonlocal."""
    targets: set[str] = set()
    declared: set[str] = set()
    for node in nodes:
        for child in ast.walk(node):
            match child:
                case ast.Name(id=name, ctx=ast.Store() | ast.Del()):
                    targets.add(name)
                case ast.FunctionDef(name=name) | ast.AsyncFunctionDef(name=name) | ast.ClassDef(name=name):
                    targets.add(name)
                case ast.alias(name=name, asname=asname):
                    targets.add(asname or name.split(".")[0])
                case ast.MatchAs(name=str() as name) | ast.MatchStar(name=str() as name):
                    targets.add(name)
                case ast.MatchMapping(rest=str() as name) | ast.ExceptHandler(name=str() as name):
                    targets.add(name)
                case ast.Global(names=names) | ast.Nonlocal(names=names):
                    declared.update(names)
    return targets - declared


class Namer:
    """Hands out names that collide neither with reserved names nor with each other."""

    def __init__(self, reserved: Iterable[str] = ()) -> None:
        self._taken = set(reserved)

    def reserve(self, *names: str) -> None:
        self._taken.update(names)

    def fresh(self, base: str) -> str:
        candidate = base
        counter = 0
        while candidate in self._taken:
            counter += 1
            candidate = f"{base}_{counter}"
        self._taken.add(candidate)
        return candidate
