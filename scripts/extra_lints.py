#!/usr/bin/env python3
"""Project-specific lint rules.

Rules:
1. No class-based tests in test files (Hypothesis state machines excepted)
2. No imports inside library functions
3. No mutable default arguments
4. No print() in library code (use logging)
5. No explicit lock acquire()/release() in library code (use ``with``)
6. No module-level random.* draws in library code (use the table's rng)

Usage: python scripts/extra_lints.py [DIRECTORY ...]
"""

import ast
import sys
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path

DEFAULT_DIRECTORIES = ("src", "tests")

# Names on the ``random`` module that are fine to reference from library code.
ALLOWED_RANDOM_ATTRS = frozenset({"Random", "SystemRandom"})


@dataclass
class LintError:
    file: Path
    line: int
    column: int
    rule: str
    message: str

    def __str__(self) -> str:
        return f"{self.file}:{self.line}:{self.column}: {self.rule}: {self.message}"


class LintVisitor(ast.NodeVisitor):
    """Walks one module and collects rule violations."""

    def __init__(self, file: Path) -> None:
        self.file = file
        self.errors: list[LintError] = []
        self._is_test_file = file.name.startswith("test_") or file.name == "conftest.py"
        self._function_depth = 0

    def _add_error(self, node: ast.AST, rule: str, message: str) -> None:
        lineno = getattr(node, "lineno", 0)
        col_offset = getattr(node, "col_offset", 0)
        self.errors.append(LintError(self.file, lineno, col_offset, rule, message))

    def visit_ClassDef(self, node: ast.ClassDef) -> None:
        if self._is_test_file and node.name.startswith("Test"):
            is_state_machine_case = any(
                isinstance(base, ast.Attribute) and base.attr == "TestCase"
                for base in node.bases
            )
            if not is_state_machine_case:
                msg = f"Class-based test '{node.name}' found. Use functions."
                self._add_error(node, "no-class-tests", msg)
        self.generic_visit(node)

    def _visit_function(self, node: ast.FunctionDef | ast.AsyncFunctionDef) -> None:
        self._function_depth += 1
        for default in node.args.defaults + node.args.kw_defaults:
            if default is not None and _is_mutable_default(default):
                msg = "Mutable default argument. Use None instead."
                self._add_error(default, "mutable-default", msg)
        self.generic_visit(node)
        self._function_depth -= 1

    visit_FunctionDef = _visit_function
    visit_AsyncFunctionDef = _visit_function

    def _check_import(self, node: ast.Import | ast.ImportFrom) -> None:
        if self._function_depth > 0 and not self._is_test_file:
            self._add_error(
                node,
                "import-in-function",
                "Import inside function. Move to module level.",
            )
        self.generic_visit(node)

    visit_Import = _check_import
    visit_ImportFrom = _check_import

    def visit_Call(self, node: ast.Call) -> None:
        if not self._is_test_file:
            func = node.func
            if isinstance(func, ast.Name) and func.id == "print":
                self._add_error(
                    node, "no-print", "Use logging instead of print() in library code."
                )
            elif isinstance(func, ast.Attribute):
                if func.attr in ("acquire", "release"):
                    self._add_error(
                        node,
                        "no-manual-locking",
                        f"Explicit {func.attr}(). Hold locks with a 'with' block.",
                    )
                elif (
                    isinstance(func.value, ast.Name)
                    and func.value.id == "random"
                    and func.attr not in ALLOWED_RANDOM_ATTRS
                ):
                    self._add_error(
                        node,
                        "no-global-random",
                        f"random.{func.attr}() uses shared state. Draw from an rng.",
                    )
        self.generic_visit(node)


def _is_mutable_default(node: ast.expr) -> bool:
    if isinstance(node, (ast.List, ast.Dict, ast.Set)):
        return True
    return (
        isinstance(node, ast.Call)
        and isinstance(node.func, ast.Name)
        and node.func.id in ("list", "dict", "set")
    )


def lint_source(path: Path, source: str) -> list[LintError]:
    """Lint already-read source text attributed to ``path``."""
    try:
        tree = ast.parse(source)
    except SyntaxError as e:
        return [LintError(path, e.lineno or 0, e.offset or 0, "syntax-error", str(e))]
    visitor = LintVisitor(path)
    visitor.visit(tree)
    return visitor.errors


def lint_file(path: Path) -> list[LintError]:
    return lint_source(path, path.read_text())


def lint_directories(directories: Iterable[Path]) -> list[LintError]:
    errors: list[LintError] = []
    for dir_path in directories:
        if not dir_path.exists():
            continue
        for py_file in sorted(dir_path.rglob("*.py")):
            errors.extend(lint_file(py_file))
    return sorted(errors, key=lambda e: (str(e.file), e.line, e.column))


def main(argv: list[str] | None = None) -> int:
    args = sys.argv[1:] if argv is None else argv
    errors = lint_directories(Path(d) for d in (args or DEFAULT_DIRECTORIES))

    if errors:
        for error in errors:
            print(error)
        print(f"\nFound {len(errors)} lint error(s)")
        return 1

    print("All project lint checks passed!")
    return 0


if __name__ == "__main__":
    sys.exit(main())
