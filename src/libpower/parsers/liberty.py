"""Liberty (.lib) file parser using Lark.

Parses a Liberty file with a formal grammar (liberty.lark), transforms the parse
tree into a light dictionary AST, and builds the library model from it. Each
``internal_power`` group is read into an ``InternalPowerAttrs`` builder and
turned into ``InternalPower`` records registered with their cell.

Malformed internal power groups are handled according to an ``ErrorPolicy``:
abort loading, or drop the group with or without a warning.
"""

import functools
import logging
import re
from pathlib import Path
from typing import Any, Optional

from lark import Lark, Transformer
from lark.exceptions import LarkError

from ..config import ErrorPolicy, get_settings
from ..exceptions import LibertyError, MalformedTableError, UnsupportedTableAxesError
from ..models.common import OperatingCondition, RiseFall, ScaleFactors
from ..models.internal_power import InternalPower, InternalPowerAttrs, InternalPowerModel
from ..models.liberty import Cell, LibertyLibrary, Port
from ..models.table import TableAxis, TableAxisVariable, TableModel, TableTemplate, make_table
from .base import BaseParser
from .func_expr import parse_func_expr

logger = logging.getLogger(__name__)

# Load grammar from file (relative to this module)
GRAMMAR_PATH = Path(__file__).parent / "liberty.lark"

# Pre-compiled regex for backslash line continuation
_BACKSLASH_CONTINUATION = re.compile(r"\\\s*\n\s*")
_INDEX_ATTR = re.compile(r"^index_(\d+)$")
_VARIABLE_ATTR = re.compile(r"^variable_(\d+)$")

TEMPLATE_GROUPS = ("lu_table_template", "power_lut_template")
POWER_TABLE_GROUPS = ("rise_power", "fall_power", "power")
SCALAR_TEMPLATE = "scalar"


@functools.cache
def _get_lark_parser() -> Lark:
    """Returns a cached Lark parser instance.

    Uses functools.cache to ensure the parser is only created once,
    improving performance for batch processing.
    """
    return Lark(
        GRAMMAR_PATH.read_text(),
        parser="lalr",
        propagate_positions=False,
        maybe_placeholders=False,
    )


class LibertyTransformer(Transformer):
    """Transforms the Lark parse tree into nested group dictionaries.

    Every group becomes ``{"_type", "_args", "_qualifier", "_attributes", "_groups"}``.
    Attribute values are strings (simple attributes) or lists of strings
    (complex attributes); numeric conversion happens when the model is built.
    """

    # === Value transformations ===

    def string_value(self, items) -> str:
        """Handle quoted strings, stripping quotes."""
        return str(items[0])[1:-1]

    def word_value(self, items) -> str:
        """Handle unquoted values."""
        return str(items[0]).strip()

    def arg_list(self, items) -> list:
        return list(items)

    # === Attribute transformations ===

    def simple_attr(self, items) -> tuple[str, Any]:
        """Simple attribute: name : value ;"""
        return (str(items[0]), items[1])

    def complex_attr(self, items) -> tuple[str, list]:
        """Complex attribute: name ( args ) ;"""
        args = items[1] if len(items) > 1 else []
        return (str(items[0]), args)

    # === Group transformations ===

    def group(self, items) -> dict:
        """Group: name ( args ) { statements }"""
        name = str(items[0])
        rest = items[1:]
        args: list = []
        if rest and isinstance(rest[0], list):
            args = rest[0]
            rest = rest[1:]

        attributes: dict[str, Any] = {}
        groups: list[dict] = []
        for item in rest:
            if isinstance(item, dict):
                groups.append(item)
            elif isinstance(item, tuple):
                key, value = item
                attributes[key] = value

        return {
            "_type": name,
            "_args": args,
            "_qualifier": " ".join(str(a) for a in args) if args else None,
            "_attributes": attributes,
            "_groups": groups,
        }

    def start(self, items) -> dict:
        """Entry point - return library AST."""
        return items[0] if items else {}


class LibertyParser(BaseParser[LibertyLibrary]):
    """Liberty parser using Lark grammar.

    Args:
        on_error: Policy for malformed internal power groups. Defaults to the
            ``on_error`` setting.
    """

    def __init__(self, on_error: Optional[ErrorPolicy] = None):
        super().__init__()
        self._parser = _get_lark_parser()
        self.on_error = on_error if on_error is not None else get_settings().on_error

    def parse(self, path: Path) -> LibertyLibrary:
        """Parses a Liberty file (optionally gzip-compressed) from a given path.

        Args:
            path: Path to the Liberty file.

        Returns:
            A populated LibertyLibrary object.
        """
        logger.info(f"Parsing Liberty file: {path}")
        content = self._read_file(path, encoding="utf-8", errors="replace")
        # name is stem, but if it's .lib.gz we want the name without .lib
        name = path.name.split(".")[0]
        return self.parse_string(content, name)

    def parse_string(self, content: str, name: str = "unknown") -> LibertyLibrary:
        """Parses Liberty content from a string.

        Args:
            content: The Liberty file content.
            name: Name for the library if the file does not give one.

        Returns:
            A populated LibertyLibrary object.

        Raises:
            LibertyError: If the content is not valid Liberty syntax, or a
                malformed internal power group is found under the abort policy.
        """
        logger.debug(f"Parsing content string, length: {len(content)}")

        content = _BACKSLASH_CONTINUATION.sub(" ", content)
        try:
            tree = self._parser.parse(content)
        except LarkError as e:
            raise LibertyError(f"Liberty syntax error in '{name}': {e}") from e

        ast = LibertyTransformer().transform(tree)
        return self._build_library(ast, name)

    def _build_library(self, ast: dict, default_name: str) -> LibertyLibrary:
        """Converts the transformed AST to a LibertyLibrary model."""
        attrs = ast.get("_attributes", {})
        groups = ast.get("_groups", [])

        if ast.get("_type") != "library":
            logger.warning(f"Top-level group is '{ast.get('_type')}', expected 'library'")

        library = LibertyLibrary(
            name=ast.get("_qualifier") or default_name,
            technology=self._get_str(attrs, "technology"),
            time_unit=self._get_str(attrs, "time_unit", "1ns"),
            voltage_unit=self._get_str(attrs, "voltage_unit", "1V"),
            leakage_power_unit=self._get_str(attrs, "leakage_power_unit", "1nW"),
            nom_voltage=self._get_float(attrs, "nom_voltage"),
            nom_temperature=self._get_float(attrs, "nom_temperature"),
            nom_process=self._get_float(attrs, "nom_process"),
            default_operating_conditions=self._get_str(attrs, "default_operating_conditions"),
            internal_power_scaling=ScaleFactors(
                k_process=self._get_float(attrs, "k_process_internal_power", 0.0),
                k_volt=self._get_float(attrs, "k_volt_internal_power", 0.0),
                k_temp=self._get_float(attrs, "k_temp_internal_power", 0.0),
            ),
        )

        cap_unit = attrs.get("capacitive_load_unit")
        if cap_unit:
            library.capacitive_load_unit = self._parse_cap_unit(cap_unit)

        for grp in groups:
            group_type = grp.get("_type")
            if group_type == "operating_conditions":
                corner = self._build_operating_conditions(grp)
                library.operating_conditions[corner.name] = corner
            elif group_type in TEMPLATE_GROUPS:
                template = self._build_template(grp)
                library.templates[template.name] = template

        for grp in groups:
            if grp.get("_type") == "cell":
                self._build_cell(grp, library)

        library.attributes = dict(attrs)
        return library

    def _build_operating_conditions(self, grp: dict) -> OperatingCondition:
        attrs = grp.get("_attributes", {})
        return OperatingCondition(
            name=grp.get("_qualifier") or "",
            process=self._get_float(attrs, "process", 1.0),
            voltage=self._get_float(attrs, "voltage", 1.0),
            temperature=self._get_float(attrs, "temperature", 25.0),
        )

    def _build_template(self, grp: dict) -> TableTemplate:
        """Build TableTemplate from a lu_table_template / power_lut_template group."""
        attrs = grp.get("_attributes", {})
        variables = self._numbered_attrs(attrs, _VARIABLE_ATTR)
        indices = self._numbered_attrs(attrs, _INDEX_ATTR)
        axes = []
        for number in sorted(variables):
            variable = TableAxisVariable.from_liberty(self._get_str(attrs, variables[number]))
            if variable is TableAxisVariable.UNKNOWN:
                logger.warning(
                    f"Template '{grp.get('_qualifier')}' has unknown {variables[number]}: "
                    f"{attrs.get(variables[number])}"
                )
            values = self._extract_index(attrs.get(indices[number])) if number in indices else []
            axes.append(TableAxis(variable=variable, values=values))
        return TableTemplate(name=grp.get("_qualifier") or "", axes=axes)

    def _build_cell(self, grp: dict, library: LibertyLibrary) -> Cell:
        """Build Cell from group AST, including its internal power records."""
        attrs = grp.get("_attributes", {})
        nested = grp.get("_groups", [])

        cell = Cell(name=grp.get("_qualifier") or "unknown", area=self._get_float(attrs, "area", 0.0))
        library.add_cell(cell)

        pin_groups = list(self._pin_groups(nested))
        for pin_grp in pin_groups:
            for port in self._build_ports(pin_grp):
                cell.add_port(port)

        for n in nested:
            if n.get("_type") == "pg_pin":
                n_attrs = n.get("_attributes", {})
                cell.pg_pins[n.get("_qualifier") or "unknown"] = {
                    "pg_type": self._get_str(n_attrs, "pg_type"),
                    "voltage_name": self._get_str(n_attrs, "voltage_name"),
                }

        # Second pass: every port exists before related_pin names are resolved
        for pin_grp in pin_groups:
            for port_name in pin_grp.get("_args", []):
                port = cell.find_port(str(port_name))
                for power_grp in pin_grp.get("_groups", []):
                    if power_grp.get("_type") == "internal_power":
                        self._build_internal_power(power_grp, cell, port, library)

        logger.debug(f"Cell {cell.name}: {len(cell.internal_powers)} internal power record(s)")
        return cell

    def _pin_groups(self, nested: list[dict]):
        """Yields pin groups, including those nested in bus and bundle groups."""
        for n in nested:
            group_type = n.get("_type")
            if group_type == "pin":
                yield n
            elif group_type in ("bus", "bundle"):
                yield from self._pin_groups(n.get("_groups", []))

    def _build_ports(self, grp: dict) -> list[Port]:
        """Build one Port per name of a pin group (``pin(A, B)`` declares two)."""
        attrs = grp.get("_attributes", {})
        return [
            Port(
                name=str(name),
                direction=self._get_str(attrs, "direction", "input"),
                capacitance=self._get_float(attrs, "capacitance"),
                function=self._get_expr(attrs, "function"),
            )
            for name in grp.get("_args", []) or ["unknown"]
        ]

    def _build_internal_power(
        self, grp: dict, cell: Cell, port: Port, library: LibertyLibrary
    ) -> list[InternalPower]:
        """Reads one internal_power group into a builder and finalizes it.

        One record is created per name in ``related_pin``; a group without
        ``related_pin`` yields a single record with no related port.

        Returns:
            The created records (empty if the group was dropped).
        """
        attrs = grp.get("_attributes", {})
        builder = InternalPowerAttrs()
        context = f"{cell.name}/{port.name}"

        try:
            when = self._get_expr(attrs, "when")
            if when:
                builder.set_when(parse_func_expr(when, cell.ports.keys()))

            pg_pin = self._get_str(attrs, "related_pg_pin")
            if pg_pin:
                builder.set_related_pg_pin(pg_pin)

            for n in grp.get("_groups", []):
                group_type = n.get("_type")
                if group_type not in POWER_TABLE_GROUPS:
                    continue
                model = self._build_power_model(n, library, context)
                if model is None:
                    continue
                if group_type == "power":
                    for rf in RiseFall.range():
                        builder.set_model(rf, model)
                else:
                    builder.set_model(RiseFall.from_liberty(group_type), model)
        except LibertyError as e:
            self._handle_error(e, builder, context)
            return []

        related_ports = self._related_ports(attrs, cell, context)
        if not related_ports:
            builder.delete_contents()
            return []

        # All records but the last share the builder's objects through a copy
        records = [InternalPower(cell, port, related, builder.copy()) for related in related_ports[:-1]]
        records.append(InternalPower(cell, port, related_ports[-1], builder))
        return records

    def _related_ports(self, attrs: dict, cell: Cell, context: str) -> list[Optional[Port]]:
        names = self._get_str(attrs, "related_pin")
        if not names:
            return [None]
        ports = []
        for name in names.split():
            related = cell.find_port(name)
            if related is None:
                logger.warning(f"{context}: internal_power related_pin '{name}' not found")
                continue
            ports.append(related)
        return ports

    def _build_power_model(
        self, grp: dict, library: LibertyLibrary, context: str
    ) -> Optional[InternalPowerModel]:
        """Builds and checks the model of one rise_power / fall_power / power group.

        Returns:
            The model, or None for a related-pin power table, which is dropped.

        Raises:
            MalformedTableError: If indices and values do not fit.
            UnsupportedTableOrderError: If the table has more than three axes.
            UnsupportedTableAxesError: If an axis is neither slew nor load.
        """
        table = self._build_table(grp, library)
        model = InternalPowerModel(table)
        try:
            model.find_axis_values(0.0, 0.0)
        except UnsupportedTableAxesError:
            if not InternalPowerModel.check_axes(table):
                raise
            logger.warning(
                f"{context}: {grp.get('_type')} is indexed by related pin variables "
                f"({', '.join(axis.variable.value for axis in table.axes)}), table ignored"
            )
            return None
        return model

    def _build_table(self, grp: dict, library: LibertyLibrary) -> TableModel:
        """Build a table from a table group and its template."""
        attrs = grp.get("_attributes", {})
        group_type = grp.get("_type", "table")
        template_name = grp.get("_qualifier")

        template: Optional[TableTemplate] = None
        if template_name and template_name != SCALAR_TEMPLATE:
            template = library.templates.get(template_name)
            if template is None:
                raise MalformedTableError(group_type, f"template '{template_name}' not found")

        indices = self._numbered_attrs(attrs, _INDEX_ATTR)
        order = max([template.order if template else 0] + list(indices))
        axes = []
        for number in range(1, order + 1):
            template_axis = template.axes[number - 1] if template and number <= template.order else None
            variable = template_axis.variable if template_axis else TableAxisVariable.UNKNOWN
            if number in indices:
                values = self._extract_index(attrs.get(indices[number]))
            else:
                values = template_axis.values if template_axis else []
            try:
                axes.append(TableAxis(variable=variable, values=values))
            except ValueError as e:
                raise MalformedTableError(group_type, str(e).splitlines()[0]) from e

        values = self._extract_values(attrs.get("values"))
        if not values:
            raise MalformedTableError(group_type, "no values")
        try:
            return make_table(axes, values)
        except ValueError as e:
            raise MalformedTableError(group_type, str(e).splitlines()[0]) from e

    def _handle_error(self, error: LibertyError, builder: InternalPowerAttrs, context: str) -> None:
        """Applies the error policy to a group that could not be built."""
        builder.delete_contents()
        if self.on_error is ErrorPolicy.ABORT:
            raise error
        if self.on_error is ErrorPolicy.WARN:
            logger.warning(f"{context}: skipping internal_power: {error}")
        else:
            logger.debug(f"{context}: skipping internal_power: {error}")

    def _numbered_attrs(self, attrs: dict, pattern: re.Pattern) -> dict[int, str]:
        """Maps N to the attribute name for attributes like index_N / variable_N."""
        numbered = {}
        for key in attrs:
            match = pattern.match(key)
            if match:
                numbered[int(match.group(1))] = key
        return numbered

    def _extract_index(self, data: Any) -> list[float]:
        """Extract index values from attribute."""
        if data is None:
            return []
        if isinstance(data, list):
            result = []
            for x in data:
                result.extend(self._parse_number_list(str(x)))
            return result
        return self._parse_number_list(str(data))

    def _extract_values(self, data: Any) -> list[float]:
        """Extract table values from attribute as a flat, row-major list."""
        return self._extract_index(data)

    def _parse_number_list(self, s: str) -> list[float]:
        """Parse comma-separated numbers from a string."""
        s = s.strip("\"'")
        numbers = []
        for p in re.split(r"[,\s]+", s):
            p = p.strip()
            if p:
                try:
                    numbers.append(float(p))
                except ValueError:
                    logger.warning(f"Ignoring non-numeric table entry '{p}'")
        return numbers

    def _parse_cap_unit(self, value: Any) -> tuple[float, str]:
        """Parse capacitive_load_unit value."""
        if isinstance(value, list) and len(value) >= 2:
            try:
                return (float(value[0]), str(value[1]).strip("\"'"))
            except ValueError:
                pass
        if isinstance(value, str):
            parts = re.split(r"[,\s]+", value.strip("\"'"))
            if len(parts) >= 2:
                try:
                    return (float(parts[0]), parts[1])
                except ValueError:
                    pass
        return (1.0, "pf")

    def _get_str(
        self, d: dict, key: str, default: str = None, chars: str = "\"'"
    ) -> Optional[str]:
        """Get string value from dictionary, stripping surrounding ``chars``."""
        val = d.get(key)
        if val is None:
            return default
        # Unwrap single-element lists (from complex_attr like 'technology(cmos)')
        if isinstance(val, list):
            if len(val) != 1:
                return default
            val = val[0]
        return str(val).strip().strip(chars)

    def _get_expr(self, d: dict, key: str) -> Optional[str]:
        """Get a boolean expression attribute (``function``, ``when``).

        Only double quotes are stripped: a trailing ' is the postfix NOT operator.
        """
        return self._get_str(d, key, chars='"')

    def _get_float(self, d: dict, key: str, default: float = None) -> Optional[float]:
        """Get float value from dictionary."""
        val = self._get_str(d, key)
        if val is None:
            return default
        try:
            return float(val)
        except ValueError:
            return default

    def validate(self, data: LibertyLibrary) -> list[str]:
        """Validates the parsed Liberty library for internal power analysis."""
        logger.debug(f"Validating library: {data.name}")
        warnings = []

        if not data.cells:
            warnings.append("Library contains no cells")

        # Cells without outputs (fillers, taps) have nothing to switch
        without_power = [
            name
            for name, cell in data.cells.items()
            if cell.output_ports and not cell.internal_powers
        ]
        if without_power:
            warnings.append(f"{len(without_power)} cells {without_power} have no internal power")

        empty = [
            f"{power.liberty_cell.name}/{power.port.name}"
            for cell in data.cells.values()
            for power in cell.internal_powers
            if all(power.model(rf) is None for rf in RiseFall.range())
        ]
        if empty:
            warnings.append(f"{len(empty)} internal power records {empty} have no tables")

        if warnings:
            logger.warning(f"Validation warnings for {data.name}: {warnings}")

        return warnings
