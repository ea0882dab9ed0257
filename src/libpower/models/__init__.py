"""Data models for Liberty internal power"""

from .common import OperatingCondition, RiseFall, ScaleFactors, Unit, Units
from .func_expr import FuncExpr, FuncOp
from .internal_power import (
    InternalPower,
    InternalPowerAttrs,
    InternalPowerModel,
    ModelOwnership,
)
from .liberty import Cell, LibertyLibrary, Port
from .table import (
    ConstantTable,
    Table1,
    Table2,
    Table3,
    TableAxis,
    TableAxisVariable,
    TableModel,
    TableTemplate,
    make_table,
)

__all__ = [
    "RiseFall",
    "OperatingCondition",
    "ScaleFactors",
    "Unit",
    "Units",
    "FuncExpr",
    "FuncOp",
    "InternalPower",
    "InternalPowerAttrs",
    "InternalPowerModel",
    "ModelOwnership",
    "LibertyLibrary",
    "Cell",
    "Port",
    "TableAxis",
    "TableAxisVariable",
    "TableModel",
    "TableTemplate",
    "ConstantTable",
    "Table1",
    "Table2",
    "Table3",
    "make_table",
]
