"""Pytest configuration and fixtures.

Provides shared Liberty content/files, table axes and a CLI runner used across
multiple tests.
"""

import tempfile
import textwrap
from pathlib import Path

import pytest
from typer.testing import CliRunner

from libpower.models.table import TableAxis, TableAxisVariable


@pytest.fixture
def sample_liberty_content():
    """Provides a sample Liberty file content as a string.

    Contains:
    - Library header (units, nominal PVT, internal power derating).
    - Operating condition "slow" (1.0V, 125C).
    - Power templates: 1D over input transition, 2D over (input transition,
      output load), and a related-pin 2D template.
    - Cells:
        - INV_X1: 2D rise_power, 1D fall_power, related_pg_pin VDD.
        - NAND2_X1: an edge-independent scalar `power` group related to A and B,
          plus a 1D rise_power related to B with an index override.
        - DFF_X1: a related-pin rise table (dropped) and a conditional record.
    """
    return textwrap.dedent("""
    library(power_lib) {
      technology (cmos);
      delay_model : table_lookup;
      time_unit : "1ns";
      voltage_unit : "1V";
      leakage_power_unit : "1nW";
      capacitive_load_unit (1.0, pf);

      nom_process : 1.0;
      nom_temperature : 25.0;
      nom_voltage : 1.2;
      k_volt_internal_power : 0.5;
      k_temp_internal_power : 0.01;

      /* corners */
      operating_conditions(slow) {
        process : 1.0;
        voltage : 1.0;
        temperature : 125.0;
      }

      power_lut_template(energy_1d) {
        variable_1 : input_transition_time;
        index_1 ("0.0, 1.0, 2.0");
      }
      power_lut_template(energy_2d) {
        variable_1 : input_transition_time;
        variable_2 : total_output_net_capacitance;
        index_1 ("0.0, 1.0");
        index_2 ("0.0, 4.0");
      }
      power_lut_template(related_2d) {
        variable_1 : related_pin_transition;
        variable_2 : constrained_pin_transition;
        index_1 ("0.1, 0.2");
        index_2 ("0.1, 0.2");
      }
      lu_table_template(delay_template) {
        variable_1 : input_net_transition;
        variable_2 : total_output_net_capacitance;
        index_1 ("0.01, 0.1");
        index_2 ("0.001, 0.01");
      }

      cell(INV_X1) {
        area : 1.5;
        pg_pin(VDD) {
          pg_type : primary_power;
          voltage_name : VDD;
        }
        pg_pin(VSS) {
          pg_type : primary_ground;
          voltage_name : VSS;
        }
        pin(A) {
          direction : input;
          capacitance : 0.002;
        }
        pin(Y) {
          direction : output;
          function : "!A";
          internal_power() {
            related_pin : "A";
            related_pg_pin : VDD;
            rise_power(energy_2d) {
              values ("1.0, 5.0", \\
                      "2.0, 6.0");
            }
            fall_power(energy_1d) {
              values ("0.5, 1.5, 2.5");
            }
          }
        }
      }

      cell(NAND2_X1) {
        area : 2.0;
        pin(A) {
          direction : input;
          capacitance : 0.002;
        }
        pin(B) {
          direction : input;
          capacitance : 0.002;
        }
        pin(Y) {
          direction : output;
          function : "!(A & B)";
          internal_power() {
            related_pin : "A B";
            when : "!A | B";
            power(scalar) {
              values ("0.75");
            }
          }
          internal_power() {
            related_pin : "B";
            rise_power(energy_1d) {
              index_1 ("0.0, 2.0");
              values ("1.0, 3.0");
            }
          }
        }
      }

      cell(DFF_X1) {
        area : 4.0;
        ff(IQ, IQN) {
          next_state : "D";
          clocked_on : "CK";
        }
        pin(D) {
          direction : input;
          capacitance : 0.003;
          internal_power() {
            related_pin : "CK";
            rise_power(related_2d) {
              values ("0.1, 0.2", "0.3, 0.4");
            }
            fall_power(energy_1d) {
              values ("0.2, 0.3, 0.4");
            }
          }
        }
        pin(CK) {
          direction : input;
          clock : true;
        }
        pin(Q) {
          direction : output;
          function : "IQ";
          internal_power() {
            related_pin : "CK";
            when : "D";
            rise_power(energy_2d) {
              values ("1.0, 2.0", "3.0, 4.0");
            }
          }
        }
      }
    }
    """)


@pytest.fixture
def sample_liberty_file(sample_liberty_content):
    """Creates a temporary .lib file populated with sample content.

    Yields:
        Path to the temporary file. Auto-deletes on cleanup.
    """
    with tempfile.NamedTemporaryFile(mode="w", suffix=".lib", delete=False) as f:
        f.write(sample_liberty_content)
        path = Path(f.name)
    yield path
    path.unlink()


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def slew_axis():
    return TableAxis(variable=TableAxisVariable.INPUT_TRANSITION_TIME, values=[0.0, 1.0, 2.0])


@pytest.fixture
def load_axis():
    return TableAxis(
        variable=TableAxisVariable.TOTAL_OUTPUT_NET_CAPACITANCE, values=[0.0, 4.0]
    )


class RecordingTable:
    """Stand-in table engine that records the axis values it is asked for."""

    def __init__(self, axes, result=1.0):
        self.axes = tuple(axes)
        self.order = len(self.axes)
        self.result = result
        self.calls = []

    @property
    def axis1(self):
        return self.axes[0] if len(self.axes) > 0 else None

    @property
    def axis2(self):
        return self.axes[1] if len(self.axes) > 1 else None

    @property
    def axis3(self):
        return self.axes[2] if len(self.axes) > 2 else None

    def find_value(self, cell, corner, value1=0.0, value2=0.0, value3=0.0):
        self.calls.append((value1, value2, value3))
        return self.result

    def release(self):
        pass


@pytest.fixture
def recording_table():
    """Factory for RecordingTable instances."""
    return RecordingTable
