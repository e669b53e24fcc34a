"""Formula compiler: transforms Python AST into expression trees.

The source of a formula (``lambda: p1.age == p2.age``) is parsed via
``ast.parse`` and walked; it is never executed.  Names are resolved the
way Python would resolve them inside the lambda:

- closure variable -> ``cell_contents`` of its closure cell (writable)
- module global    -> member of the module's globals dict (writable)
- builtin          -> constant

For string formulas the names resolve in a caller-supplied mapping
instead.
"""

from __future__ import annotations

import ast
import builtins
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from tether.model.expressions import (
    BinaryExpr,
    BinaryOp,
    CallExpr,
    ConstantExpr,
    Expression,
    IndexExpr,
    MemberAccessExpr,
    UnaryExpr,
    UnaryOp,
)

from ._scopes import ClosureScope


# ---------------------------------------------------------------------------
# CompileError
# ---------------------------------------------------------------------------

class CompileError(Exception):
    """A formula could not be turned into an expression tree.

    When the offending AST node is known, ``filename`` and ``lineno``
    locate it in the user's source and are appended to the message.
    """

    def __init__(self, message: str, node: ast.AST | None = None, ctx: CompileContext | None = None):
        self.filename: str | None = None
        self.lineno: int | None = None
        node_line = getattr(node, "lineno", None)
        if ctx is not None and node_line is not None:
            self.filename = ctx.source_file
            self.lineno = node_line + ctx.source_line_offset
            message = f"{message} [{self.filename}, line {self.lineno}]"
        super().__init__(message)


# ---------------------------------------------------------------------------
# CompileContext
# ---------------------------------------------------------------------------

@dataclass
class CompileContext:
    """Name scopes and source location for one compilation."""

    scopes: list[Mapping] = field(default_factory=list)
    """Writable scopes searched in order (closure, globals, namespace)"""

    builtin_scope: Mapping = field(default_factory=lambda: vars(builtins))
    """Read-only fallback scope; hits become constants"""

    source_line_offset: int = 0
    source_file: str = "<unknown>"

    def resolve(self, name: str) -> Expression | None:
        for scope in self.scopes:
            if name not in scope:
                continue
            if isinstance(scope, ClosureScope):
                # Keyed on the cell so every formula over this variable shares it
                return MemberAccessExpr(
                    owner=ConstantExpr(value=scope.cell(name)), member="cell_contents",
                )
            return MemberAccessExpr(owner=ConstantExpr(value=scope), member=name)
        if name in self.builtin_scope:
            return ConstantExpr(value=self.builtin_scope[name])
        return None


# ---------------------------------------------------------------------------
# AST operator maps
# ---------------------------------------------------------------------------

_BINOP_MAP: dict[type, BinaryOp] = {
    ast.Add: BinaryOp.ADD,
    ast.Sub: BinaryOp.SUB,
    ast.Mult: BinaryOp.MUL,
    ast.Div: BinaryOp.DIV,
    ast.FloorDiv: BinaryOp.FLOOR_DIV,
    ast.Mod: BinaryOp.MOD,
    ast.Pow: BinaryOp.POW,
}

_CMPOP_MAP: dict[type, BinaryOp] = {
    ast.Eq: BinaryOp.EQ,
    ast.NotEq: BinaryOp.NE,
    ast.Lt: BinaryOp.LT,
    ast.LtE: BinaryOp.LE,
    ast.Gt: BinaryOp.GT,
    ast.GtE: BinaryOp.GE,
}

_UNARYOP_MAP: dict[type, UnaryOp] = {
    ast.USub: UnaryOp.NEG,
    ast.UAdd: UnaryOp.POS,
    ast.Not: UnaryOp.NOT,
}

_REJECTED_NODES: dict[type, str] = {
    ast.Lambda: "Nested lambdas are not allowed in a binding formula",
    ast.NamedExpr: "Walrus operator (:=) is not allowed in a binding formula",
    ast.IfExp: "Conditional expressions are not allowed in a binding formula",
    ast.Dict: "Dict literals are not allowed in a binding formula",
    ast.Set: "Set literals are not allowed in a binding formula",
    ast.List: "List literals are not allowed in a binding formula",
    ast.Tuple: "Tuple literals are not allowed in a binding formula",
    ast.ListComp: "List comprehensions are not allowed in a binding formula",
    ast.SetComp: "Set comprehensions are not allowed in a binding formula",
    ast.DictComp: "Dict comprehensions are not allowed in a binding formula",
    ast.GeneratorExp: "Generator expressions are not allowed in a binding formula",
    ast.Await: "await expressions are not allowed in a binding formula",
    ast.Yield: "yield expressions are not allowed in a binding formula",
    ast.YieldFrom: "yield from expressions are not allowed in a binding formula",
    ast.JoinedStr: "f-strings are not allowed in a binding formula",
    ast.Starred: "Star unpacking is not allowed in a binding formula",
    ast.Slice: "Slice operations are not allowed in a binding formula",
}


# ---------------------------------------------------------------------------
# ASTCompiler
# ---------------------------------------------------------------------------

class ASTCompiler:
    """Compiles Python expression AST nodes into expression trees."""

    def __init__(self, ctx: CompileContext) -> None:
        self.ctx = ctx

    def compile_expression(self, node: ast.expr) -> Expression:
        if type(node) in _REJECTED_NODES:
            raise CompileError(_REJECTED_NODES[type(node)], node, self.ctx)
        handler = self._EXPR_HANDLERS.get(type(node))
        if handler is None:
            raise CompileError(
                f"Unsupported Python syntax in a binding formula: {type(node).__name__}",
                node, self.ctx,
            )
        return handler(self, node)

    def _compile_constant(self, node: ast.Constant) -> Expression:
        return ConstantExpr(value=node.value)

    def _compile_name(self, node: ast.Name) -> Expression:
        resolved = self.ctx.resolve(node.id)
        if resolved is None:
            raise CompileError(f"Name '{node.id}' is not defined", node, self.ctx)
        return resolved

    def _compile_attribute(self, node: ast.Attribute) -> Expression:
        owner = self.compile_expression(node.value)
        return MemberAccessExpr(owner=owner, member=node.attr)

    def _compile_subscript(self, node: ast.Subscript) -> Expression:
        owner = self.compile_expression(node.value)
        index = self.compile_expression(node.slice)
        return IndexExpr(owner=owner, index=index)

    def _compile_binop(self, node: ast.BinOp) -> Expression:
        op = _BINOP_MAP.get(type(node.op))
        if op is None:
            raise CompileError(
                f"Unsupported binary operator: {type(node.op).__name__}",
                node, self.ctx,
            )
        left = self.compile_expression(node.left)
        right = self.compile_expression(node.right)
        return BinaryExpr(op=op, left=left, right=right)

    def _compile_boolop(self, node: ast.BoolOp) -> Expression:
        op = BinaryOp.AND_ALSO if isinstance(node.op, ast.And) else BinaryOp.OR_ELSE
        # Left-fold: a and b and c -> AND_ALSO(AND_ALSO(a, b), c)
        result = self.compile_expression(node.values[0])
        for val in node.values[1:]:
            right = self.compile_expression(val)
            result = BinaryExpr(op=op, left=result, right=right)
        return result

    def _compile_compare(self, node: ast.Compare) -> Expression:
        # a == b == c -> (a == b) and (b == c)
        parts: list[Expression] = []
        left = self.compile_expression(node.left)

        for cmp_op, comparator in zip(node.ops, node.comparators):
            op = _CMPOP_MAP.get(type(cmp_op))
            if op is None:
                raise CompileError(
                    f"Unsupported comparison operator: {type(cmp_op).__name__}",
                    node, self.ctx,
                )
            right = self.compile_expression(comparator)
            parts.append(BinaryExpr(op=op, left=left, right=right))
            left = right

        result = parts[0]
        for p in parts[1:]:
            result = BinaryExpr(op=BinaryOp.AND_ALSO, left=result, right=p)
        return result

    def _compile_unaryop(self, node: ast.UnaryOp) -> Expression:
        op = _UNARYOP_MAP.get(type(node.op))
        if op is None:
            raise CompileError(
                f"Unsupported unary operator: {type(node.op).__name__}",
                node, self.ctx,
            )
        return UnaryExpr(op=op, operand=self.compile_expression(node.operand))

    def _compile_call(self, node: ast.Call) -> Expression:
        if node.keywords:
            raise CompileError(
                "Keyword arguments are not supported in a binding formula",
                node, self.ctx,
            )
        function = self.compile_expression(node.func)
        args = [self.compile_expression(a) for a in node.args]
        return CallExpr(function=function, args=args)

    # Expression handler dispatch table
    _EXPR_HANDLERS: dict[type, Callable[[ASTCompiler, ast.expr], Expression]] = {
        ast.Constant: _compile_constant,
        ast.Name: _compile_name,
        ast.Attribute: _compile_attribute,
        ast.Subscript: _compile_subscript,
        ast.BinOp: _compile_binop,
        ast.BoolOp: _compile_boolop,
        ast.Compare: _compile_compare,
        ast.UnaryOp: _compile_unaryop,
        ast.Call: _compile_call,
    }
