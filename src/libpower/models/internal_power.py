"""Internal power models, records and their builder.

Internal power is the energy dissipated inside a cell when an output switches,
characterized in ``internal_power`` groups as per-edge tables indexed by input
transition time and output load capacitance.

Three classes cooperate:

- ``InternalPowerModel`` wraps the table of one edge and maps (slew, load) onto
  the table's axes.
- ``InternalPowerAttrs`` accumulates one ``internal_power`` group while the
  loader reads it.
- ``InternalPower`` is the immutable record built from a builder. It registers
  itself with its cell when constructed.

Construction happens on a single thread before any query. Afterwards ``power``
and ``report_power`` only read data.
"""

from enum import Enum
from typing import TYPE_CHECKING, NamedTuple, Optional

from ..exceptions import UnsupportedTableAxesError, UnsupportedTableOrderError
from .common import OperatingCondition, RiseFall, Unit
from .func_expr import FuncExpr
from .table import (
    MAX_TABLE_ORDER,
    ConstantTable,
    TableAxis,
    TableAxisVariable,
    TableModel,
)

if TYPE_CHECKING:
    from .liberty import Cell, Port

# Axis variables of related-pin power tables (see InternalPowerModel.check_axes)
RELATED_POWER_AXIS_VARIABLES = frozenset(
    {
        TableAxisVariable.CONSTRAINED_PIN_TRANSITION,
        TableAxisVariable.RELATED_PIN_TRANSITION,
        TableAxisVariable.RELATED_OUT_TOTAL_OUTPUT_NET_CAPACITANCE,
    }
)


class InternalPowerModel:
    """Internal power of one switching edge.

    Attributes:
        table: The characterization table, or None if the edge has no
            characterized power.
    """

    __slots__ = ("_table",)

    def __init__(self, table: Optional[TableModel] = None):
        self._table = table

    @property
    def table(self) -> Optional[TableModel]:
        return self._table

    def power(
        self,
        cell: Optional["Cell"],
        corner: Optional[OperatingCondition],
        in_slew: float,
        load_cap: float,
    ) -> float:
        """Returns the power at the given input slew and output load.

        Args:
            cell: The cell the table belongs to (used for derating).
            corner: Operating condition, or None for nominal.
            in_slew: Input transition time in library time units.
            load_cap: Output load in library capacitance units.

        Returns:
            The interpolated power, or 0.0 if there is no table.

        Raises:
            UnsupportedTableOrderError: If the table has more than three axes.
            UnsupportedTableAxesError: If an axis is not slew or load.
        """
        if self._table is None:
            return 0.0
        value1, value2, value3 = self.find_axis_values(in_slew, load_cap)
        return self._table.find_value(cell, corner, value1, value2, value3)

    def report_power(
        self,
        cell: Optional["Cell"],
        corner: Optional[OperatingCondition],
        in_slew: float,
        load_cap: float,
        digits: int,
    ) -> str:
        """Returns a text report of the lookup ``power`` would do, or "" without a table."""
        if self._table is None:
            return ""
        value1, value2, value3 = self.find_axis_values(in_slew, load_cap)
        library = cell.liberty_library if cell is not None else None
        power_unit = library.units.power_unit if library is not None else Unit()
        return self._table.report_value(
            "Power", cell, corner, value1, value2, value3, power_unit, digits
        )

    def find_axis_values(self, in_slew: float, load_cap: float) -> tuple[float, float, float]:
        """Resolves the table's axes to (value1, value2, value3).

        Positions beyond the table's order are 0.0. A constant table resolves
        to all zeros without looking at its axes.

        Raises:
            UnsupportedTableOrderError: If the table has more than three axes.
            UnsupportedTableAxesError: If an axis is not slew or load.
        """
        table = self._table
        if isinstance(table, ConstantTable):
            return (0.0, 0.0, 0.0)
        axes = tuple(table.axes)
        if len(axes) > MAX_TABLE_ORDER:
            raise UnsupportedTableOrderError(len(axes))
        values = [self.axis_value(axis, in_slew, load_cap) for axis in axes]
        values.extend([0.0] * (MAX_TABLE_ORDER - len(values)))
        return tuple(values)

    @staticmethod
    def axis_value(axis: TableAxis, in_slew: float, load_cap: float) -> float:
        """Maps one axis to the input slew or the output load.

        Raises:
            UnsupportedTableAxesError: For any other axis variable.
        """
        variable = axis.variable
        if variable == TableAxisVariable.INPUT_TRANSITION_TIME:
            return in_slew
        if variable == TableAxisVariable.TOTAL_OUTPUT_NET_CAPACITANCE:
            return load_cap
        raise UnsupportedTableAxesError(getattr(variable, "value", str(variable)))

    @staticmethod
    def check_axes(table: TableModel) -> bool:
        """Checks a related-pin power table.

        True iff axis 1 and axis 2 (where present) are indexed by constrained
        pin transition, related pin transition or related output load, and
        there is no axis 3. This is a different vocabulary from the one
        ``axis_value`` resolves.
        """
        axis1 = table.axis1
        axis2 = table.axis2
        axis3 = table.axis3
        axis_ok = True
        if axis1 is not None:
            axis_ok &= InternalPowerModel.check_axis(axis1)
        if axis2 is not None:
            axis_ok &= InternalPowerModel.check_axis(axis2)
        axis_ok &= axis3 is None
        return axis_ok

    @staticmethod
    def check_axis(axis: TableAxis) -> bool:
        return axis.variable in RELATED_POWER_AXIS_VARIABLES

    def release(self) -> None:
        """Releases the cached lookup state of the wrapped table."""
        if self._table is not None:
            self._table.release()

    def __repr__(self) -> str:
        if self._table is None:
            return "InternalPowerModel(None)"
        variables = ", ".join(axis.variable.value for axis in self._table.axes)
        return f"InternalPowerModel(order={self._table.order}, axes=[{variables}])"


class ModelOwnership(str, Enum):
    """How a builder slot relates to its model."""

    ABSENT = "absent"
    OWNED = "owned"
    SHARED = "shared"  # same model object as the rise slot


class ExtractedAttrs(NamedTuple):
    when: Optional[FuncExpr]
    models: tuple[Optional[InternalPowerModel], Optional[InternalPowerModel]]
    related_pg_pin: Optional[str]


class InternalPowerAttrs:
    """Mutable accumulator for one ``internal_power`` group.

    The loader fills it field by field, then an ``InternalPower`` takes its
    contents with ``extract()``. A builder that was never consumed is torn down
    with ``delete_contents()``; after ``extract()`` that is a no-op.
    """

    def __init__(self):
        self._when: Optional[FuncExpr] = None
        self._models: list[Optional[InternalPowerModel]] = [None, None]
        self._related_pg_pin: Optional[str] = None
        self._consumed = False

    @property
    def when(self) -> Optional[FuncExpr]:
        return self._when

    def set_when(self, when: Optional[FuncExpr]) -> None:
        self._when = when

    def model(self, rf: RiseFall) -> Optional[InternalPowerModel]:
        return self._models[rf.index]

    def set_model(self, rf: RiseFall, model: Optional[InternalPowerModel]) -> None:
        self._models[rf.index] = model

    @property
    def related_pg_pin(self) -> Optional[str]:
        return self._related_pg_pin

    def set_related_pg_pin(self, related_pg_pin: Optional[str]) -> None:
        self._related_pg_pin = related_pg_pin

    @property
    def is_consumed(self) -> bool:
        return self._consumed

    def ownership(self, rf: RiseFall) -> ModelOwnership:
        model = self._models[rf.index]
        if model is None:
            return ModelOwnership.ABSENT
        if rf is RiseFall.FALL and model is self._models[RiseFall.RISE.index]:
            return ModelOwnership.SHARED
        return ModelOwnership.OWNED

    def copy(self) -> "InternalPowerAttrs":
        """Returns a builder holding the same condition, models and pg pin.

        Used when one group yields a record per related pin. The objects are
        shared, not duplicated.
        """
        other = InternalPowerAttrs()
        other._when = self._when
        other._models = list(self._models)
        other._related_pg_pin = self._related_pg_pin
        return other

    def extract(self) -> ExtractedAttrs:
        """Removes and returns the condition, both models and the pg pin name."""
        rise, fall = self._models
        extracted = ExtractedAttrs(self._when, (rise, fall), self._related_pg_pin)
        self._when = None
        self._models = [None, None]
        self._related_pg_pin = None
        self._consumed = True
        return extracted

    def delete_contents(self) -> list[InternalPowerModel]:
        """Tears down whatever the builder still holds.

        The condition's subexpressions are released, each owned model is
        released once (a fall slot sharing the rise model is skipped) and the pg
        pin name is dropped.

        Returns:
            The models that were released.
        """
        if self._when is not None:
            self._when.delete_subexprs()
        released = []
        for rf in RiseFall.range():
            if self.ownership(rf) is ModelOwnership.OWNED:
                model = self._models[rf.index]
                model.release()
                released.append(model)
        self._when = None
        self._models = [None, None]
        self._related_pg_pin = None
        return released

    def __repr__(self) -> str:
        return (
            f"InternalPowerAttrs(when={self._when!r}, rise={self._models[0]!r}, "
            f"fall={self._models[1]!r}, related_pg_pin={self._related_pg_pin!r})"
        )


class InternalPower:
    """Internal power of one (port, related port) pair.

    Construction extracts the builder's fields and appends the record to
    ``cell.internal_powers``. Nothing changes afterwards.
    """

    __slots__ = ("_port", "_related_port", "_when", "_models", "_related_pg_pin")

    def __init__(
        self,
        cell: "Cell",
        port: "Port",
        related_port: Optional["Port"],
        attrs: InternalPowerAttrs,
    ):
        extracted = attrs.extract()
        self._port = port
        self._related_port = related_port
        self._when = extracted.when
        self._models = extracted.models
        self._related_pg_pin = extracted.related_pg_pin
        cell.add_internal_power(self)

    @property
    def port(self) -> "Port":
        return self._port

    @property
    def related_port(self) -> Optional["Port"]:
        return self._related_port

    @property
    def when(self) -> Optional[FuncExpr]:
        return self._when

    @property
    def related_pg_pin(self) -> Optional[str]:
        return self._related_pg_pin

    @property
    def liberty_cell(self) -> Optional["Cell"]:
        return self._port.liberty_cell

    def model(self, rf: RiseFall) -> Optional[InternalPowerModel]:
        return self._models[rf.index]

    @property
    def is_edge_independent(self) -> bool:
        """True when both edges use the same model (a Liberty ``power`` group)."""
        rise, fall = self._models
        return rise is not None and rise is fall

    def power(
        self,
        rf: RiseFall,
        corner: Optional[OperatingCondition],
        in_slew: float,
        load_cap: float,
    ) -> float:
        """Returns the power of the ``rf`` edge, or 0.0 if that edge has no model."""
        model = self._models[rf.index]
        if model is None:
            return 0.0
        return model.power(self.liberty_cell, corner, in_slew, load_cap)

    def report_power(
        self,
        rf: RiseFall,
        corner: Optional[OperatingCondition],
        in_slew: float,
        load_cap: float,
        digits: int = 3,
    ) -> str:
        model = self._models[rf.index]
        if model is None:
            return ""
        return model.report_power(self.liberty_cell, corner, in_slew, load_cap, digits)

    def __repr__(self) -> str:
        related = self._related_port.name if self._related_port is not None else None
        return (
            f"InternalPower(port={self._port.name!r}, related_port={related!r}, "
            f"when={str(self._when) if self._when else None!r}, "
            f"related_pg_pin={self._related_pg_pin!r})"
        )
