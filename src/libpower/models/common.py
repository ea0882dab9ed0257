"""Common type definitions and enumerations shared across libpower models.

This module defines fundamental types like switching edges, operating
conditions (PVT corners), unit handling and derating factors that are used
throughout the framework.
"""

import re
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


class RiseFall(str, Enum):
    """Enumeration of signal switching edges.

    Each edge has a stable integer index (rise=0, fall=1) used to address
    per-edge slots, and iteration always yields RISE before FALL.
    """

    RISE = "rise"
    FALL = "fall"

    @property
    def index(self) -> int:
        return 0 if self is RiseFall.RISE else 1

    @classmethod
    def range(cls) -> tuple["RiseFall", "RiseFall"]:
        return (cls.RISE, cls.FALL)

    @classmethod
    def from_liberty(cls, group_type: str) -> Optional["RiseFall"]:
        """Maps a Liberty table group name (``rise_power``, ``fall_power``) to an edge."""
        if group_type.startswith("rise"):
            return cls.RISE
        if group_type.startswith("fall"):
            return cls.FALL
        return None


class OperatingCondition(BaseModel):
    """Specification of a PVT (Process, Voltage, Temperature) operating condition.

    Attributes:
        name: The name of the operating condition (e.g., "ss_0p72v_125c").
        process: The process scaling factor (1.0 is nominal).
        voltage: The supply voltage in Volts.
        temperature: The junction temperature in Celsius.
    """

    name: str = ""
    process: float = Field(default=1.0, description="Process scaling factor")
    voltage: float = Field(default=1.0, description="Nominal voltage in Volts")
    temperature: float = Field(default=25.0, description="Temperature in Celsius")

    model_config = {"frozen": True}


_UNIT_PATTERN = re.compile(r"^\s*([\d.eE+-]*)\s*([a-zA-Z]+)\s*$")


def _canonical_suffix(suffix: str) -> str:
    """Uppercases the SI base symbol of farads/watts/volts/amps (``pf`` -> ``pF``)."""
    suffix = suffix.strip()
    if suffix and suffix[-1].lower() in "fwva":
        return suffix[:-1] + suffix[-1].upper()
    return suffix


class Unit(BaseModel):
    """A Liberty unit: a multiplier applied to raw file values plus a display suffix.

    Attributes:
        scale: Multiplier from raw library values to the displayed suffix
            (e.g. 100 for a ``100ps`` time unit shown in ``ps``).
        suffix: The unit symbol (e.g. "ns", "pF", "nW").
    """

    scale: float = 1.0
    suffix: str = ""

    model_config = {"frozen": True}

    @classmethod
    def from_liberty(cls, attr) -> "Unit":
        """Parses a Liberty unit attribute.

        Accepts the string form used by ``time_unit`` / ``leakage_power_unit``
        ("1ns", "100ps", "1nW") and the tuple form of ``capacitive_load_unit``
        ((1.0, "pf") or "1, pf").

        Args:
            attr: The attribute value.

        Returns:
            The parsed Unit. Unrecognised values fall back to a unit-less scale of 1.
        """
        if isinstance(attr, (tuple, list)) and len(attr) >= 2:
            try:
                scale = float(attr[0])
            except (TypeError, ValueError):
                scale = 1.0
            return cls(scale=scale, suffix=_canonical_suffix(str(attr[1]).strip("\"'")))

        if isinstance(attr, str):
            text = attr.strip().strip("\"'")
            if "," in text:
                value, _, suffix = text.partition(",")
                return cls.from_liberty((value.strip() or "1", suffix))
            match = _UNIT_PATTERN.match(text)
            if match:
                value = match.group(1)
                try:
                    scale = float(value) if value else 1.0
                except ValueError:
                    scale = 1.0
                return cls(scale=scale, suffix=_canonical_suffix(match.group(2)))

        return cls()

    def as_string(self, value: float, digits: int = 3) -> str:
        """Formats a raw library value with fixed precision (without the suffix)."""
        return f"{value * self.scale:.{digits}f}"


class Units(BaseModel):
    """The set of units a library declares."""

    time: Unit = Field(default_factory=lambda: Unit(suffix="ns"))
    capacitance: Unit = Field(default_factory=lambda: Unit(suffix="pF"))
    power: Unit = Field(default_factory=lambda: Unit(suffix="nW"))
    voltage: Unit = Field(default_factory=lambda: Unit(suffix="V"))

    @property
    def power_unit(self) -> Unit:
        return self.power


class ScaleFactors(BaseModel):
    """Linear PVT derating coefficients for internal power.

    The derating factor is
    ``(1 + k_process*(P - P0)) * (1 + k_volt*(V - V0)) * (1 + k_temp*(T - T0))``
    where (P0, V0, T0) is the library's nominal operating point.
    """

    k_process: float = 0.0
    k_volt: float = 0.0
    k_temp: float = 0.0

    def factor(
        self,
        corner: Optional[OperatingCondition],
        nom_process: Optional[float],
        nom_voltage: Optional[float],
        nom_temperature: Optional[float],
    ) -> float:
        if corner is None:
            return 1.0
        scale = 1.0
        if nom_process is not None:
            scale *= 1.0 + self.k_process * (corner.process - nom_process)
        if nom_voltage is not None:
            scale *= 1.0 + self.k_volt * (corner.voltage - nom_voltage)
        if nom_temperature is not None:
            scale *= 1.0 + self.k_temp * (corner.temperature - nom_temperature)
        return scale
