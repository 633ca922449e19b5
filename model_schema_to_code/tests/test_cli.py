import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from model_schema_to_code.model_schema_to_code import model_schema_to_code

SCHEMAS_DIR = Path(__file__).parent / "test_data" / "schemas"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def write_json(tmp_path):
    def _write(name, data):
        path = tmp_path / name
        path.write_text(json.dumps(data))
        return str(path)

    return _write


class TestCli:
    def test_default_target_is_postgres(self, runner):
        result = runner.invoke(model_schema_to_code, [str(SCHEMAS_DIR / "people.json")])
        assert result.exit_code == 0, result.output
        assert "CREATE TABLE people (" in result.output
        assert result.output.startswith("-- Code generated by model_schema_to_code people.json. DO NOT EDIT.")

    @pytest.mark.parametrize(
        "target,expected",
        [
            ("go", "type Person struct {"),
            ("typescript", "export interface Person {"),
        ],
    )
    def test_structural_targets(self, runner, target, expected):
        result = runner.invoke(model_schema_to_code, ["-t", target, str(SCHEMAS_DIR / "people.json")])
        assert result.exit_code == 0, result.output
        assert expected in result.output
        assert f"model_schema_to_code people.json -t {target}" in result.output

    def test_unknown_target_is_rejected(self, runner):
        result = runner.invoke(model_schema_to_code, ["-t", "rust", str(SCHEMAS_DIR / "people.json")])
        assert result.exit_code == 2

    def test_invalid_schema_reports_every_problem(self, runner, write_json):
        path = write_json("broken.json", {"models": [{"name": "A"}, {"name": "B", "fields": {"X": "Colour"}}]})
        result = runner.invoke(model_schema_to_code, [path])
        assert result.exit_code == 1
        assert "model A: [MissingPrimaryIdentifier]" in result.output
        assert "model B: [UnknownEnum]" in result.output
        assert "problem(s) found, nothing was generated" in result.output
        assert "CREATE TABLE" not in result.output

    def test_malformed_schema(self, runner, write_json):
        path = write_json("malformed.json", {"tables": []})
        result = runner.invoke(model_schema_to_code, [path])
        assert result.exit_code == 1
        assert "Unknown declaration section(s): tables" in result.output

    def test_unsupported_construct_fails_after_printing(self, runner, write_json):
        schema = {
            "models": [
                {"name": "Order", "fields": {"OrderNo": "Integer", "Region": "String"}, "identifiers": {"primary": ["OrderNo", "Region"]}},
                {"name": "Invoice", "fields": {"ID": "AutoIncrement"}, "identifiers": {"primary": ["ID"]}, "relations": {"Order": "ForOne"}},
            ]
        }
        path = write_json("orders.json", schema)
        result = runner.invoke(model_schema_to_code, ["-t", "typescript", path])
        assert result.exit_code == 1
        assert "export interface Order {" in result.output
        assert "model Invoice: [UnsupportedConstruct]" in result.output

    def test_config_file(self, runner, write_json):
        config = write_json("config.json", {"go_package": "store", "generation_comment": "Custom header"})
        result = runner.invoke(model_schema_to_code, ["-t", "go", "-c", config, str(SCHEMAS_DIR / "people.json")])
        assert result.exit_code == 0, result.output
        assert result.output.startswith("// Custom header\n\npackage store\n")

    def test_config_can_disable_the_header(self, runner, write_json):
        config = write_json("config.json", {"add_generation_comment": False})
        result = runner.invoke(model_schema_to_code, ["-c", config, str(SCHEMAS_DIR / "people.json")])
        assert result.exit_code == 0, result.output
        assert result.output.startswith("CREATE TABLE nationalities (")
