"""tether Python framework — public API.

Users import everything from this single flat namespace::

    from tether.framework import bind, notify, Observable, notifying, event
"""

from ._notify import (
    Event,
    Observable,
    event,
    notifying,
)

from ._scopes import ClosureScope

from ._compiler import (
    CompileError,
)

from ._bind import (
    bind,
    compile_formula,
    compile_source,
    notify,
)

__all__ = [
    # Notifying objects
    "Event",
    "Observable",
    "event",
    "notifying",
    # Scopes
    "ClosureScope",
    # Formulas
    "bind",
    "compile_formula",
    "compile_source",
    "notify",
    # Errors
    "CompileError",
]
