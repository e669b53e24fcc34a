"""Writable views of the variables a formula lambda closes over.

A name inside ``lambda: left == right`` compiles to ``cell_contents`` of
the closure cell holding it.  Every lambda closing over the same
variable shares that cell, so all formulas agree on one storage
location; writing it rebinds the enclosing function's variable.
"""

from __future__ import annotations

from collections.abc import Iterator, MutableMapping
from types import CellType, FunctionType


class ClosureScope(MutableMapping):
    """Mapping of free-variable name -> value, backed by closure cells."""

    def __init__(self, func: FunctionType) -> None:
        code = func.__code__
        closure = func.__closure__ or ()
        self._cells: dict[str, CellType] = dict(zip(code.co_freevars, closure))
        self._owner_name = getattr(func, "__qualname__", "<lambda>")

    def cell(self, name: str) -> CellType:
        """The cell behind *name*, shared with every other closure over it."""
        return self._cells[name]

    def __getitem__(self, name: str) -> object:
        cell = self._cells[name]
        try:
            return cell.cell_contents
        except ValueError:
            raise KeyError(name) from None

    def __setitem__(self, name: str, value: object) -> None:
        if name not in self._cells:
            raise KeyError(f"'{name}' is not a closure variable of {self._owner_name}")
        self._cells[name].cell_contents = value

    def __delitem__(self, name: str) -> None:
        raise TypeError("closure variables cannot be deleted through a binding")

    def __iter__(self) -> Iterator[str]:
        return iter(self._cells)

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, name: object) -> bool:
        return name in self._cells

    def __repr__(self) -> str:
        return f"ClosureScope({self._owner_name}, {sorted(self._cells)})"
