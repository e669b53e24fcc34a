"""Source parsing and scope discovery for formula functions.

A formula is usually an inline lambda, so ``inspect.getsourcelines``
may hand back a fragment of a larger statement (``b = bind(lambda: ...,
registry=r)``).  The fragment is cut down to a parseable expression
around the ``lambda`` keyword, and the matching lambda node is picked
by line number and by the names its code refers to.
"""

from __future__ import annotations

import ast
import inspect
import textwrap
from types import FunctionType

from ._compiler import CompileContext, CompileError
from ._scopes import ClosureScope


# ---------------------------------------------------------------------------
# Source parsing
# ---------------------------------------------------------------------------

def _parse_fragment(source: str) -> tuple[ast.AST, int]:
    """Parse *source*, or the longest parseable text starting at a lambda.

    Returns the tree and the number of lines skipped before it.
    """
    try:
        return ast.parse(source), 0
    except SyntaxError:
        pass

    start = source.find("lambda")
    while start != -1:
        text = source[start:]
        for end in range(len(text), 0, -1):
            try:
                tree = ast.parse(text[:end], mode="eval")
            except SyntaxError:
                continue
            return tree, source.count("\n", 0, start)
        start = source.find("lambda", start + 1)

    raise CompileError("Cannot parse the source of the formula")


def _referenced_names(node: ast.AST) -> set[str]:
    names: set[str] = set()
    for child in ast.walk(node):
        if isinstance(child, ast.Name):
            names.add(child.id)
        elif isinstance(child, ast.Attribute):
            names.add(child.attr)
    return names


def _select_lambda(
    tree: ast.AST,
    func: FunctionType,
    first_line: int,
) -> ast.Lambda:
    """Pick the lambda node compiled into *func*."""
    code = func.__code__
    candidates = [
        n for n in ast.walk(tree)
        if isinstance(n, ast.Lambda)
        and n.lineno == first_line
        and not (n.args.args or n.args.posonlyargs or n.args.kwonlyargs
                 or n.args.vararg or n.args.kwarg)
    ]
    if len(candidates) > 1:
        expected = set(code.co_names) | set(code.co_freevars)
        candidates = [n for n in candidates if _referenced_names(n.body) == expected]
    if not candidates:
        raise CompileError(
            f"Cannot locate the source of {func.__qualname__}; "
            f"formulas must be zero-argument lambdas"
        )
    if len(candidates) > 1:
        raise CompileError(
            f"Several identical lambdas on one line; cannot tell which is "
            f"{func.__qualname__}"
        )
    return candidates[0]


def _parse_formula_source(func: FunctionType, context_name: str) -> tuple[ast.expr, int]:
    """Parse a formula function into the AST of the expression it returns.

    *func* is either a zero-argument lambda or a zero-argument ``def``
    whose body is a single ``return <formula>``.

    Returns
    -------
    tuple of (expression node, line offset for error locations)
    """
    if func.__code__.co_argcount or func.__code__.co_kwonlyargcount:
        raise CompileError(f"{context_name} must take no parameters")

    try:
        source_lines, start_lineno = inspect.getsourcelines(func)
    except (OSError, TypeError) as e:
        raise CompileError(f"Cannot read the source of {context_name}: {e}") from e
    source = textwrap.dedent("".join(source_lines))

    tree, skipped = _parse_fragment(source)
    offset = start_lineno - 1 + skipped

    if func.__name__ != "<lambda>":
        body = tree.body if isinstance(tree, ast.Module) else []
        if not body or not isinstance(body[0], ast.FunctionDef):
            raise CompileError(f"Expected a function definition in {context_name}")
        func_def = body[0]
        if len(func_def.body) != 1 or not isinstance(func_def.body[0], ast.Return):
            raise CompileError(
                f"{context_name} must have exactly one statement: 'return <formula>'"
            )
        if func_def.body[0].value is None:
            raise CompileError(f"{context_name} must return an expression (the formula)")
        return func_def.body[0].value, offset

    first_line = func.__code__.co_firstlineno - offset
    return _select_lambda(tree, func, first_line).body, offset


# ---------------------------------------------------------------------------
# CompileContext construction
# ---------------------------------------------------------------------------

def _build_compile_context(func: FunctionType, line_offset: int) -> CompileContext:
    """Build a ``CompileContext`` whose scopes mirror *func*'s name lookup."""
    scopes = []
    if func.__closure__:
        scopes.append(ClosureScope(func))
    scopes.append(func.__globals__)

    ctx = CompileContext(
        scopes=scopes,
        source_line_offset=line_offset,
        source_file=inspect.getfile(func),
    )

    module_builtins = func.__globals__.get("__builtins__")
    if isinstance(module_builtins, dict):
        ctx.builtin_scope = module_builtins
    elif module_builtins is not None:
        ctx.builtin_scope = vars(module_builtins)
    return ctx
