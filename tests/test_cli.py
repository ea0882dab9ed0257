import json
from pathlib import Path

from libpower.cli import app


def test_cli_help(runner):
    result = runner.invoke(app, ["--help"])
    assert result.exit_code == 0
    assert "Liberty internal power" in result.stdout


def test_cli_parse_liberty(runner, sample_liberty_file):
    result = runner.invoke(app, ["parse", str(sample_liberty_file)])
    assert result.exit_code == 0
    assert "Liberty Summary" in result.stdout
    assert "power_lib" in result.stdout
    assert "Cells: 3" in result.stdout
    assert "Internal power records" in result.stdout
    assert "NAND2_X1" in result.stdout


def test_cli_parse_not_found(runner):
    result = runner.invoke(app, ["parse", "nonexistent.lib"])
    assert result.exit_code == 1
    assert "File not found" in result.stdout


def test_cli_parse_output(runner, sample_liberty_file):
    with runner.isolated_filesystem():
        output_file = Path("power.json")
        result = runner.invoke(
            app, ["parse", str(sample_liberty_file), "--output", str(output_file)]
        )
        assert result.exit_code == 0
        assert output_file.exists()

        data = json.loads(output_file.read_text())
        assert data["library"] == "power_lib"
        assert data["power_unit"] == "1nW"
        assert len(data["internal_power"]) == 6

        inv = data["internal_power"][0]
        assert inv["cell"] == "INV_X1"
        assert inv["pin"] == "Y"
        assert inv["related_pin"] == "A"
        assert inv["related_pg_pin"] == "VDD"
        assert inv["rise_order"] == 2
        assert inv["fall_order"] == 1

        dff_d = next(p for p in data["internal_power"] if p["pin"] == "D")
        assert dff_d["rise_order"] is None


def test_cli_parse_abort_on_malformed(runner, tmp_path, sample_liberty_content):
    broken = tmp_path / "broken.lib"
    broken.write_text(
        sample_liberty_content.replace('values ("0.5, 1.5, 2.5");', 'values ("0.5, 1.5");')
    )

    result = runner.invoke(app, ["--on-error", "abort", "parse", str(broken)])
    assert result.exit_code == 1
    assert "Malformed table" in result.stdout

    result = runner.invoke(app, ["--on-error", "skip", "parse", str(broken)])
    assert result.exit_code == 0


def test_cli_power(runner, sample_liberty_file):
    result = runner.invoke(
        app,
        ["power", str(sample_liberty_file), "-c", "INV_X1", "-p", "Y", "-s", "0.5", "-l", "2.0"],
    )
    assert result.exit_code == 0
    assert "3.500" in result.stdout
    assert "1.000" in result.stdout


def test_cli_power_edge_and_report(runner, sample_liberty_file):
    result = runner.invoke(
        app,
        [
            "power",
            str(sample_liberty_file),
            "--cell", "INV_X1",
            "--pin", "Y",
            "--edge", "rise",
            "--slew", "0.5",
            "--load", "2.0",
            "--report",
            "--digits", "2",
        ],
    )
    assert result.exit_code == 0
    assert "Table is indexed by" in result.stdout
    assert "Power = 3.50 nW" in result.stdout
    assert "Fall" not in result.stdout


def test_cli_power_corner_override(runner, sample_liberty_file):
    result = runner.invoke(
        app,
        [
            "power",
            str(sample_liberty_file),
            "-c", "INV_X1",
            "-p", "Y",
            "-e", "rise",
            "-s", "0.5",
            "-l", "2.0",
            "--temperature", "125",
        ],
    )
    assert result.exit_code == 0
    # Nominal voltage, 100C above nominal temperature: factor 2.0
    assert "7.000" in result.stdout


def test_cli_power_related_filter(runner, sample_liberty_file):
    result = runner.invoke(
        app,
        [
            "power",
            str(sample_liberty_file),
            "-c", "NAND2_X1",
            "-p", "Y",
            "-r", "B",
            "-s", "1.0",
            "-l", "0.0",
        ],
    )
    assert result.exit_code == 0
    assert "0.750" in result.stdout
    assert "2.000" in result.stdout


def test_cli_power_cell_not_found(runner, sample_liberty_file):
    result = runner.invoke(
        app,
        ["power", str(sample_liberty_file), "-c", "XOR9", "-p", "Y", "-s", "0.1", "-l", "0.1"],
    )
    assert result.exit_code == 1
    assert "Cell not found" in result.stdout


def test_cli_power_pin_not_found(runner, sample_liberty_file):
    result = runner.invoke(
        app,
        ["power", str(sample_liberty_file), "-c", "INV_X1", "-p", "Q", "-s", "0.1", "-l", "0.1"],
    )
    assert result.exit_code == 1
    assert "Pin not found" in result.stdout


def test_cli_power_no_records(runner, sample_liberty_file):
    result = runner.invoke(
        app,
        ["power", str(sample_liberty_file), "-c", "INV_X1", "-p", "A", "-s", "0.1", "-l", "0.1"],
    )
    assert result.exit_code == 0
    assert "No internal power" in result.stdout
