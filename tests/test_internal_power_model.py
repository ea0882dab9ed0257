"""Tests for InternalPowerModel.

Verifies axis resolution (slew/load onto table axes), the unsupported order and
axis paths, the related-pin axis check and the power report.
"""

import pytest

from libpower.exceptions import (
    ErrorKind,
    PowerModelError,
    UnsupportedTableAxesError,
    UnsupportedTableOrderError,
)
from libpower.models.common import OperatingCondition, ScaleFactors
from libpower.models.internal_power import InternalPowerModel
from libpower.models.liberty import Cell, LibertyLibrary
from libpower.models.table import ConstantTable, TableAxis, TableAxisVariable, make_table


def _axis(variable, values=(0.0, 1.0)):
    return TableAxis(variable=variable, values=list(values))


def test_power_without_table_is_zero():
    model = InternalPowerModel(None)
    assert model.power(None, None, 1.5, 2.0) == 0.0
    assert model.report_power(None, None, 1.5, 2.0, 3) == ""


def test_constant_table_ignores_slew_and_load():
    model = InternalPowerModel(ConstantTable(value=0.42))

    for slew, load in [(0.0, 0.0), (1.5, 2.0), (100.0, -3.0)]:
        assert model.power(None, None, slew, load) == pytest.approx(0.42)
    assert model.find_axis_values(1.5, 2.0) == (0.0, 0.0, 0.0)


def test_one_axis_table_scenario(slew_axis):
    """Rise model over input transition time evaluated at slew 1.5."""
    table = make_table([slew_axis], [0.5, 1.5, 2.5])
    model = InternalPowerModel(table)

    assert model.find_axis_values(1.5, 2.0) == (1.5, 0.0, 0.0)
    assert model.power(None, None, 1.5, 2.0) == pytest.approx(2.0)


def test_two_axis_forwards_slew_and_load(recording_table):
    table = recording_table(
        [
            _axis(TableAxisVariable.INPUT_TRANSITION_TIME),
            _axis(TableAxisVariable.TOTAL_OUTPUT_NET_CAPACITANCE),
        ],
        result=7.0,
    )
    model = InternalPowerModel(table)

    assert model.power(None, None, 0.8, 3.2) == 7.0
    assert table.calls == [(0.8, 3.2, 0.0)]


def test_axis_order_follows_table(recording_table):
    """Load first, then slew: values come out in table axis order."""
    table = recording_table(
        [
            _axis(TableAxisVariable.TOTAL_OUTPUT_NET_CAPACITANCE),
            _axis(TableAxisVariable.INPUT_TRANSITION_TIME),
            _axis(TableAxisVariable.TOTAL_OUTPUT_NET_CAPACITANCE),
        ]
    )
    model = InternalPowerModel(table)

    model.power(None, None, 0.8, 3.2)
    assert table.calls == [(3.2, 0.8, 3.2)]


def test_two_axis_interpolation(slew_axis, load_axis):
    table = make_table(
        [TableAxis(variable=slew_axis.variable, values=[0.0, 1.0]), load_axis],
        [[1.0, 5.0], [2.0, 6.0]],
    )
    model = InternalPowerModel(table)

    assert model.power(None, None, 0.8, 3.2) == pytest.approx(5.0)


def test_order_above_three_never_reaches_table(recording_table):
    table = recording_table(
        [_axis(TableAxisVariable.INPUT_TRANSITION_TIME)] * 4
    )
    model = InternalPowerModel(table)

    with pytest.raises(UnsupportedTableOrderError) as excinfo:
        model.power(None, None, 0.8, 3.2)

    assert excinfo.value.code == 225
    assert excinfo.value.kind is ErrorKind.UNSUPPORTED_TABLE_ORDER
    assert table.calls == []

    with pytest.raises(UnsupportedTableOrderError):
        model.report_power(None, None, 0.8, 3.2, 3)


def test_axis_value_identity():
    slew = _axis(TableAxisVariable.INPUT_TRANSITION_TIME)
    load = _axis(TableAxisVariable.TOTAL_OUTPUT_NET_CAPACITANCE)

    for value in (0.0, 0.125, 3.5):
        assert InternalPowerModel.axis_value(slew, value, 99.0) == value
        assert InternalPowerModel.axis_value(load, 99.0, value) == value


@pytest.mark.parametrize(
    "variable",
    [
        v
        for v in TableAxisVariable
        if v
        not in (
            TableAxisVariable.INPUT_TRANSITION_TIME,
            TableAxisVariable.TOTAL_OUTPUT_NET_CAPACITANCE,
        )
    ],
)
def test_axis_value_rejects_other_variables(variable):
    with pytest.raises(UnsupportedTableAxesError) as excinfo:
        InternalPowerModel.axis_value(_axis(variable), 1.0, 2.0)

    assert excinfo.value.code == 226
    assert isinstance(excinfo.value, PowerModelError)
    assert variable.value in str(excinfo.value)


def test_input_net_transition_is_not_resolved(recording_table):
    """input_net_transition belongs to delay tables, not power tables."""
    table = recording_table([_axis(TableAxisVariable.INPUT_NET_TRANSITION)])

    with pytest.raises(UnsupportedTableAxesError):
        InternalPowerModel(table).power(None, None, 1.0, 1.0)
    assert table.calls == []


class TestCheckAxes:
    """The related-pin power axis check."""

    def test_constant_table_passes(self):
        assert InternalPowerModel.check_axes(ConstantTable(value=1.0))

    @pytest.mark.parametrize(
        "variable",
        [
            TableAxisVariable.CONSTRAINED_PIN_TRANSITION,
            TableAxisVariable.RELATED_PIN_TRANSITION,
            TableAxisVariable.RELATED_OUT_TOTAL_OUTPUT_NET_CAPACITANCE,
        ],
    )
    def test_related_variables_pass(self, variable):
        table = make_table([_axis(variable)], [1.0, 2.0])
        assert InternalPowerModel.check_axes(table)

    def test_two_related_axes_pass(self):
        table = make_table(
            [
                _axis(TableAxisVariable.RELATED_PIN_TRANSITION),
                _axis(TableAxisVariable.CONSTRAINED_PIN_TRANSITION),
            ],
            [[1.0, 2.0], [3.0, 4.0]],
        )
        assert InternalPowerModel.check_axes(table)

    def test_slew_and_load_fail(self):
        table = make_table(
            [
                _axis(TableAxisVariable.INPUT_TRANSITION_TIME),
                _axis(TableAxisVariable.TOTAL_OUTPUT_NET_CAPACITANCE),
            ],
            [[1.0, 2.0], [3.0, 4.0]],
        )
        assert not InternalPowerModel.check_axes(table)

    def test_mixed_axes_fail(self):
        table = make_table(
            [
                _axis(TableAxisVariable.RELATED_PIN_TRANSITION),
                _axis(TableAxisVariable.TOTAL_OUTPUT_NET_CAPACITANCE),
            ],
            [[1.0, 2.0], [3.0, 4.0]],
        )
        assert not InternalPowerModel.check_axes(table)

    def test_third_axis_always_fails(self):
        related = TableAxisVariable.RELATED_PIN_TRANSITION
        table = make_table(
            [_axis(related), _axis(related), _axis(related)],
            [[[1.0, 2.0], [3.0, 4.0]], [[5.0, 6.0], [7.0, 8.0]]],
        )
        assert not InternalPowerModel.check_axes(table)


def test_report_power(slew_axis):
    library = LibertyLibrary(name="lib", leakage_power_unit="1uW")
    cell = library.add_cell(Cell(name="INV"))
    model = InternalPowerModel(make_table([slew_axis], [0.5, 1.5, 2.5]))

    report = model.report_power(cell, None, 1.5, 2.0, 2)

    assert "input_transition_time = 1.50 ns" in report
    assert "Power = 2.00 uW" in report
    # Unused load does not show up for a one-axis table
    assert "total_output_net_capacitance" not in report


def test_power_uses_library_derating(slew_axis):
    library = LibertyLibrary(
        name="lib",
        nom_voltage=1.0,
        internal_power_scaling=ScaleFactors(k_volt=1.0),
    )
    cell = library.add_cell(Cell(name="INV"))
    model = InternalPowerModel(make_table([slew_axis], [0.5, 1.5, 2.5]))
    corner = OperatingCondition(name="hot", voltage=1.1)

    assert model.power(cell, None, 1.0, 0.0) == pytest.approx(1.5)
    assert model.power(cell, corner, 1.0, 0.0) == pytest.approx(1.5 * 1.1)


def test_none_corner_uses_library_default(slew_axis):
    library = LibertyLibrary(
        name="lib",
        nom_temperature=25.0,
        operating_conditions={"slow": OperatingCondition(name="slow", temperature=125.0)},
        default_operating_conditions="slow",
        internal_power_scaling=ScaleFactors(k_temp=0.01),
    )
    cell = library.add_cell(Cell(name="INV"))
    model = InternalPowerModel(make_table([slew_axis], [0.5, 1.5, 2.5]))

    assert library.scale_factor(None) == pytest.approx(2.0)
    assert model.power(cell, None, 1.0, 0.0) == pytest.approx(1.5 * 2.0)
    # An explicit corner still wins over the default
    nominal = OperatingCondition(name="typ", temperature=25.0)
    assert model.power(cell, nominal, 1.0, 0.0) == pytest.approx(1.5)


def test_none_corner_without_default_is_nominal():
    library = LibertyLibrary(
        name="lib",
        nom_temperature=25.0,
        operating_conditions={"slow": OperatingCondition(name="slow", temperature=125.0)},
        internal_power_scaling=ScaleFactors(k_temp=0.01),
    )
    assert library.scale_factor(None) == 1.0
