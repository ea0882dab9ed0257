"""Liberty (.lib) library, cell and port models.

This module defines the Pydantic models for the parts of the Liberty format that
internal power analysis needs: libraries with their units and derating factors,
cells with their ports and power/ground pins, and the per-cell list of internal
power records. Back-references (port -> cell -> library) are private attributes
so they never show up in serialized output.
"""

import logging
from typing import TYPE_CHECKING, Any, Optional

from pydantic import BaseModel, Field, PrivateAttr

from ..exceptions import DuplicateCellError
from .common import OperatingCondition, ScaleFactors, Unit, Units
from .table import TableTemplate

if TYPE_CHECKING:
    from .internal_power import InternalPower

logger = logging.getLogger(__name__)


class Port(BaseModel):
    """Represents a pin definition for a cell.

    Attributes:
        name: The pin name.
        direction: Direction of signal flow (input, output, inout, internal).
        capacitance: Input capacitance in library units.
        function: Boolean function expression (for output pins).
    """

    name: str
    direction: str = "input"
    capacitance: Optional[float] = None
    function: Optional[str] = None

    _cell: Optional["Cell"] = PrivateAttr(default=None)

    @property
    def liberty_cell(self) -> Optional["Cell"]:
        """The cell this port belongs to."""
        return self._cell

    def __repr__(self) -> str:
        return f"Port({self.name!r}, direction={self.direction!r})"


class Cell(BaseModel):
    """Represents a standard cell definition.

    Attributes:
        name: The name of the cell (e.g., "NAND2_X1").
        area: The area of the cell in square micrometers.
        ports: Dictionary of ports keyed by name.
        pg_pins: Power/ground pins keyed by name, with their pg_type and voltage_name.
    """

    name: str
    area: float = Field(default=0.0, description="Cell area in um²")
    ports: dict[str, Port] = Field(default_factory=dict)
    pg_pins: dict[str, dict[str, Any]] = Field(
        default_factory=dict, description="Power/ground pins (VDD, VSS) with pg_type info"
    )

    _library: Optional["LibertyLibrary"] = PrivateAttr(default=None)
    _internal_powers: list = PrivateAttr(default_factory=list)

    @property
    def liberty_library(self) -> Optional["LibertyLibrary"]:
        return self._library

    def add_port(self, port: Port) -> Port:
        """Adds a port and points its back-reference at this cell."""
        port._cell = self
        self.ports[port.name] = port
        return port

    def find_port(self, name: str) -> Optional[Port]:
        return self.ports.get(name)

    def add_internal_power(self, power: "InternalPower") -> None:
        """Registers an internal power record. Called by the record's constructor."""
        self._internal_powers.append(power)

    @property
    def internal_powers(self) -> tuple["InternalPower", ...]:
        """All internal power records, in the order they were registered."""
        return tuple(self._internal_powers)

    def internal_powers_for(self, port: Port) -> list["InternalPower"]:
        """Returns the internal power records whose output is ``port``."""
        return [power for power in self._internal_powers if power.port is port]

    @property
    def output_ports(self) -> list[str]:
        return [name for name, port in self.ports.items() if port.direction == "output"]

    model_config = {"extra": "allow"}


class LibertyLibrary(BaseModel):
    """Represents a complete Liberty library.

    Attributes:
        name: Library name.
        technology: Technology name (e.g., "cmos").
        time_unit: Time unit string (e.g., "1ns").
        capacitive_load_unit: Capacitance unit tuple (multiplier, unit).
        voltage_unit: Voltage unit string.
        leakage_power_unit: Power unit string; internal power tables use it too.
        nom_voltage: Nominal voltage.
        nom_temperature: Nominal temperature.
        nom_process: Nominal process scaling.
        internal_power_scaling: PVT derating coefficients for internal power.
        templates: Table templates keyed by name.
        cells: Dictionary of cells keyed by name.
        attributes: Additional unparsed attributes.
    """

    name: str
    technology: Optional[str] = None

    # Units
    time_unit: str = "1ns"
    capacitive_load_unit: tuple[float, str] = (1.0, "pf")
    voltage_unit: str = "1V"
    leakage_power_unit: str = "1nW"

    # Nominal operating point
    nom_voltage: Optional[float] = None
    nom_temperature: Optional[float] = None
    nom_process: Optional[float] = None
    operating_conditions: dict[str, OperatingCondition] = Field(default_factory=dict)
    default_operating_conditions: Optional[str] = None

    internal_power_scaling: ScaleFactors = Field(default_factory=ScaleFactors)

    templates: dict[str, TableTemplate] = Field(default_factory=dict)
    cells: dict[str, Cell] = Field(default_factory=dict)

    attributes: dict[str, Any] = Field(default_factory=dict)

    @property
    def units(self) -> Units:
        """Returns the units declared by this library."""
        return Units(
            time=Unit.from_liberty(self.time_unit),
            capacitance=Unit.from_liberty(self.capacitive_load_unit),
            power=Unit.from_liberty(self.leakage_power_unit),
            voltage=Unit.from_liberty(self.voltage_unit),
        )

    @property
    def default_corner(self) -> Optional[OperatingCondition]:
        if self.default_operating_conditions:
            return self.operating_conditions.get(self.default_operating_conditions)
        return None

    def scale_factor(self, corner: Optional[OperatingCondition]) -> float:
        """Returns the internal power derating factor at ``corner``.

        A None corner means the library's default operating conditions, or
        nominal (factor 1.0) when the library declares none.
        """
        if corner is None:
            corner = self.default_corner
        return self.internal_power_scaling.factor(
            corner, self.nom_process, self.nom_voltage, self.nom_temperature
        )

    def add_cell(self, cell: Cell) -> Cell:
        """Adds a cell and points its back-reference at this library.

        Raises:
            DuplicateCellError: If a cell with the same name already exists.
        """
        if cell.name in self.cells:
            raise DuplicateCellError(self.name, cell.name)
        cell._library = self
        self.cells[cell.name] = cell
        return cell

    def find_cell(self, name: str) -> Optional[Cell]:
        return self.cells.get(name)

    @property
    def cell_count(self) -> int:
        """Returns the total number of cells in the library."""
        return len(self.cells)

    model_config = {"extra": "allow"}
