"""libpower Exceptions.

This module defines custom exceptions for the libpower framework.
"""

from enum import Enum
from typing import Optional


class LibertyError(Exception):
    """Base class for errors raised while loading or querying Liberty data."""


class ErrorKind(str, Enum):
    """Machine-checkable category of a characterization data fault."""

    UNSUPPORTED_TABLE_ORDER = "unsupported_table_order"
    UNSUPPORTED_TABLE_AXES = "unsupported_table_axes"


class PowerModelError(LibertyError):
    """Raised when a power table cannot be resolved against (slew, load).

    These errors signal malformed characterization data rather than a transient
    fault. The caller (usually the loader) decides whether to skip, warn or abort.

    Attributes:
        kind: The category of the fault.
        code: Stable numeric identifier of the fault.
    """

    kind: ErrorKind
    code: int

    def __init__(self, message: str, detail: Optional[str] = None):
        self.detail = detail
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.code}] {super().__str__()}"


class UnsupportedTableOrderError(PowerModelError):
    """Raised for a table with more than three independent axes."""

    kind = ErrorKind.UNSUPPORTED_TABLE_ORDER
    code = 225

    def __init__(self, order: int):
        self.order = order
        super().__init__("unsupported table order", f"order {order}")


class UnsupportedTableAxesError(PowerModelError):
    """Raised when an axis variable is neither input transition nor output load."""

    kind = ErrorKind.UNSUPPORTED_TABLE_AXES
    code = 226

    def __init__(self, variable: str):
        self.variable = variable
        super().__init__("unsupported table axes", f"variable '{variable}'")


class MalformedTableError(LibertyError):
    """Raised when a table group's indices and values do not fit together."""

    def __init__(self, group: str, reason: str):
        self.group = group
        super().__init__(f"Malformed table '{group}': {reason}")


class FuncExprError(LibertyError):
    """Raised when a Liberty boolean expression cannot be parsed."""

    def __init__(self, text: str, reason: str):
        self.text = text
        self.reason = reason
        super().__init__(f"Invalid expression '{text}': {reason}")


class DuplicateCellError(LibertyError):
    """Raised when a library defines the same cell name more than once.

    Attributes:
        library: Name of the library being built.
        cell_name: The duplicated cell name.
    """

    def __init__(self, library: str, cell_name: str):
        self.library = library
        self.cell_name = cell_name
        super().__init__(
            f"Library '{library}' already contains cell '{cell_name}'. "
            "Rename the cell or split the library before loading."
        )
