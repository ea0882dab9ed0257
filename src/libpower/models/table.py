"""Characterization table models.

A Liberty table has between zero and three independent axes. Each supported
shape is its own model (``ConstantTable``, ``Table1``, ``Table2``, ``Table3``)
carrying exactly its own axes, and ``make_table`` picks the shape from the
number of axes. Lookups use multilinear interpolation inside the grid and
linear extrapolation outside it, then apply the owning library's PVT derating.
"""

from enum import Enum
from typing import TYPE_CHECKING, Any, ClassVar, Optional, Sequence

import numpy as np
from pydantic import BaseModel, Field, PrivateAttr, field_validator, model_validator
from scipy.interpolate import RegularGridInterpolator

from ..exceptions import UnsupportedTableOrderError
from .common import OperatingCondition, Unit, Units

if TYPE_CHECKING:
    from .liberty import Cell

MAX_TABLE_ORDER = 3


class TableAxisVariable(str, Enum):
    """The quantity a table axis is indexed by (Liberty ``variable_N``)."""

    TOTAL_OUTPUT_NET_CAPACITANCE = "total_output_net_capacitance"
    EQUAL_OR_OPPOSITE_OUTPUT_NET_CAPACITANCE = "equal_or_opposite_output_net_capacitance"
    INPUT_NET_TRANSITION = "input_net_transition"
    INPUT_TRANSITION_TIME = "input_transition_time"
    RELATED_PIN_TRANSITION = "related_pin_transition"
    CONSTRAINED_PIN_TRANSITION = "constrained_pin_transition"
    OUTPUT_PIN_TRANSITION = "output_pin_transition"
    CONNECT_DELAY = "connect_delay"
    RELATED_OUT_TOTAL_OUTPUT_NET_CAPACITANCE = "related_out_total_output_net_capacitance"
    TIME = "time"
    IV_OUTPUT_VOLTAGE = "iv_output_voltage"
    INPUT_NOISE_WIDTH = "input_noise_width"
    INPUT_NOISE_HEIGHT = "input_noise_height"
    INPUT_VOLTAGE = "input_voltage"
    OUTPUT_VOLTAGE = "output_voltage"
    PATH_DEPTH = "path_depth"
    PATH_DISTANCE = "path_distance"
    NORMALIZED_VOLTAGE = "normalized_voltage"
    UNKNOWN = "unknown"

    @classmethod
    def from_liberty(cls, text: Any) -> "TableAxisVariable":
        """Returns the variable for a Liberty name, or UNKNOWN if unrecognised."""
        try:
            return cls(str(text).strip().strip("\"'"))
        except ValueError:
            return cls.UNKNOWN

    @property
    def is_time(self) -> bool:
        return self in _TIME_VARIABLES

    @property
    def is_capacitance(self) -> bool:
        return self in _CAP_VARIABLES


_TIME_VARIABLES = frozenset(
    {
        TableAxisVariable.INPUT_NET_TRANSITION,
        TableAxisVariable.INPUT_TRANSITION_TIME,
        TableAxisVariable.RELATED_PIN_TRANSITION,
        TableAxisVariable.CONSTRAINED_PIN_TRANSITION,
        TableAxisVariable.OUTPUT_PIN_TRANSITION,
        TableAxisVariable.CONNECT_DELAY,
        TableAxisVariable.TIME,
        TableAxisVariable.INPUT_NOISE_WIDTH,
    }
)
_CAP_VARIABLES = frozenset(
    {
        TableAxisVariable.TOTAL_OUTPUT_NET_CAPACITANCE,
        TableAxisVariable.EQUAL_OR_OPPOSITE_OUTPUT_NET_CAPACITANCE,
        TableAxisVariable.RELATED_OUT_TOTAL_OUTPUT_NET_CAPACITANCE,
    }
)


class TableAxis(BaseModel):
    """One independent axis of a table.

    Attributes:
        variable: The quantity this axis is indexed by.
        values: Strictly increasing index values.
    """

    variable: TableAxisVariable
    values: list[float] = Field(default_factory=list)

    model_config = {"frozen": True}

    @field_validator("values")
    @classmethod
    def validate_ascending(cls, v: list[float]) -> list[float]:
        if any(b <= a for a, b in zip(v, v[1:])):
            raise ValueError(f"axis index values must be strictly increasing: {v}")
        return v

    def __len__(self) -> int:
        return len(self.values)


class TableTemplate(BaseModel):
    """A named ``lu_table_template`` / ``power_lut_template``.

    Axes without index values get them from the table group that uses the template.
    """

    name: str
    axes: list[TableAxis] = Field(default_factory=list)

    @property
    def order(self) -> int:
        return len(self.axes)


class TableModel(BaseModel):
    """Base class of the table shapes.

    Subclasses define ``order`` and their own axis fields. The lazily built
    interpolator is cached and can be dropped with ``release()``.
    """

    order: ClassVar[int] = 0

    _interpolator: Optional[tuple] = PrivateAttr(default=None)

    model_config = {"frozen": True}

    @property
    def axes(self) -> tuple[TableAxis, ...]:
        return ()

    def _axis(self, index: int) -> Optional[TableAxis]:
        axes = self.axes
        return axes[index] if index < len(axes) else None

    @property
    def axis1(self) -> Optional[TableAxis]:
        return self._axis(0)

    @property
    def axis2(self) -> Optional[TableAxis]:
        return self._axis(1)

    @property
    def axis3(self) -> Optional[TableAxis]:
        return self._axis(2)

    @property
    def shape(self) -> tuple[int, ...]:
        return tuple(len(axis) for axis in self.axes)

    @model_validator(mode="after")
    def validate_shape(self) -> "TableModel":
        if self.order == 0:
            return self
        if any(len(axis) == 0 for axis in self.axes):
            raise ValueError("table axis has no index values")
        actual = np.asarray(self.values, dtype=float).shape
        if actual != self.shape:
            raise ValueError(f"table values have shape {actual}, axes require {self.shape}")
        return self

    def _get_interpolator(self) -> tuple:
        """Builds (or returns the cached) interpolator over the non-singleton axes."""
        if self._interpolator is None:
            data = np.asarray(self.values, dtype=float)
            keep = [i for i, axis in enumerate(self.axes) if len(axis) > 1]
            if not keep:
                self._interpolator = (None, keep, float(data.reshape(-1)[0]))
            else:
                # Singleton axes carry no information; collapse them
                grid = tuple(np.asarray(self.axes[i].values) for i in keep)
                data = data.reshape([len(self.axes[i]) for i in keep])
                interp = RegularGridInterpolator(
                    grid,
                    data,
                    bounds_error=False,
                    fill_value=None,  # Extrapolate linearly beyond the grid
                )
                self._interpolator = (interp, keep, None)
        return self._interpolator

    def lookup(self, value1: float = 0.0, value2: float = 0.0, value3: float = 0.0) -> float:
        """Returns the underated table value at the given axis values."""
        interp, keep, constant = self._get_interpolator()
        if interp is None:
            return constant
        point = (value1, value2, value3)
        return float(interp([[point[i] for i in keep]])[0])

    @staticmethod
    def scale_factor(cell: Optional["Cell"], corner: Optional[OperatingCondition]) -> float:
        """Internal power derating of the cell's library at ``corner`` (its default corner when None)."""
        library = cell.liberty_library if cell is not None else None
        if library is None:
            return 1.0
        return library.scale_factor(corner)

    def find_value(
        self,
        cell: Optional["Cell"],
        corner: Optional[OperatingCondition],
        value1: float = 0.0,
        value2: float = 0.0,
        value3: float = 0.0,
    ) -> float:
        """Interpolates the table at (value1, value2, value3) and derates it for ``corner``.

        Values for axes the table does not have are ignored.
        """
        return self.lookup(value1, value2, value3) * self.scale_factor(cell, corner)

    def report_value(
        self,
        label: str,
        cell: Optional["Cell"],
        corner: Optional[OperatingCondition],
        value1: float,
        value2: float,
        value3: float,
        unit: Unit,
        digits: int,
    ) -> str:
        """Formats a lookup as a multi-line report.

        Args:
            label: Name of the reported quantity (e.g. "Power").
            cell: Cell the table belongs to, for units and derating.
            corner: Operating condition used for derating.
            value1: Resolved value of axis 1.
            value2: Resolved value of axis 2.
            value3: Resolved value of axis 3.
            unit: Unit of the table values.
            digits: Digits after the decimal point.

        Returns:
            The report text, newline terminated.
        """
        library = cell.liberty_library if cell is not None else None
        units = library.units if library is not None else Units()
        lines = []
        if self.order == 0:
            lines.append("Table is constant")
        else:
            lines.append("Table is indexed by")
            for axis, value in zip(self.axes, (value1, value2, value3)):
                axis_unit = _axis_unit(axis.variable, units)
                text = f"{axis_unit.as_string(value, digits)} {axis_unit.suffix}".rstrip()
                lines.append(f"  {axis.variable.value} = {text}")
        raw = self.lookup(value1, value2, value3)
        scale = self.scale_factor(cell, corner)
        lines.append(f"Table value = {unit.as_string(raw, digits)}")
        if scale != 1.0:
            lines.append(f"PVT scale factor = {scale:.{digits}f}")
        lines.append(f"{label} = {unit.as_string(raw * scale, digits)} {unit.suffix}".rstrip())
        return "\n".join(lines) + "\n"

    def release(self) -> None:
        """Drops the cached interpolator."""
        self._interpolator = None


def _axis_unit(variable: TableAxisVariable, units: Units) -> Unit:
    if variable.is_time:
        return units.time
    if variable.is_capacitance:
        return units.capacitance
    return Unit()


class ConstantTable(TableModel):
    """A table with no axes: a single value."""

    order: ClassVar[int] = 0
    value: float = 0.0

    def _get_interpolator(self) -> tuple:
        return (None, [], self.value)


class Table1(TableModel):
    order: ClassVar[int] = 1
    axis_1: TableAxis
    values: list[float]

    @property
    def axes(self) -> tuple[TableAxis, ...]:
        return (self.axis_1,)


class Table2(TableModel):
    order: ClassVar[int] = 2
    axis_1: TableAxis
    axis_2: TableAxis
    values: list[list[float]]

    @property
    def axes(self) -> tuple[TableAxis, ...]:
        return (self.axis_1, self.axis_2)


class Table3(TableModel):
    order: ClassVar[int] = 3
    axis_1: TableAxis
    axis_2: TableAxis
    axis_3: TableAxis
    values: list[list[list[float]]]

    @property
    def axes(self) -> tuple[TableAxis, ...]:
        return (self.axis_1, self.axis_2, self.axis_3)


def make_table(axes: Sequence[TableAxis], values: Any) -> TableModel:
    """Builds the table shape matching the number of axes.

    Args:
        axes: Zero to three axes, in index order.
        values: Table values, either nested per axis or flat in row-major order.
            A constant table takes a scalar or a single-element list.

    Returns:
        A ConstantTable, Table1, Table2 or Table3.

    Raises:
        UnsupportedTableOrderError: If more than three axes are given.
        ValueError: If the values do not fit the axes.
    """
    order = len(axes)
    if order > MAX_TABLE_ORDER:
        raise UnsupportedTableOrderError(order)

    data = np.asarray(values, dtype=float)
    if order == 0:
        if data.size != 1:
            raise ValueError(f"constant table needs exactly one value, got {data.size}")
        return ConstantTable(value=float(data.reshape(-1)[0]))

    shape = tuple(len(axis) for axis in axes)
    if data.size != int(np.prod(shape)):
        raise ValueError(f"table has {data.size} values, axes require {shape}")
    nested = data.reshape(shape).tolist()

    if order == 1:
        return Table1(axis_1=axes[0], values=nested)
    if order == 2:
        return Table2(axis_1=axes[0], axis_2=axes[1], values=nested)
    return Table3(axis_1=axes[0], axis_2=axes[1], axis_3=axes[2], values=nested)
