#!/usr/bin/env python3

import click
import pytest

from model_schema_to_code.cli_utils import generation_comment, reconstruct_command_line
from model_schema_to_code.model_schema_to_code import model_schema_to_code


class TestCliUtils:
    """Test cases for CLI utilities"""

    def test_reconstruct_command_line_without_context(self):
        """Without an active Click context only the command name is returned"""
        assert reconstruct_command_line(model_schema_to_code) == "model_schema_to_code"

    def test_generation_comment_without_context(self):
        assert generation_comment(model_schema_to_code) == "Code generated by model_schema_to_code. DO NOT EDIT."

    def test_reconstruct_command_line_with_context(self, tmp_path):
        schema = tmp_path / "schema.json"
        schema.write_text("{}")
        params = {"target": "go", "config": None, "verbose": True, "path": str(schema)}
        with click.Context(model_schema_to_code) as ctx:
            ctx.params = params
            result = reconstruct_command_line(model_schema_to_code)
        # Flags and unset options are left out, paths are shown by name
        assert result == "model_schema_to_code schema.json -t go"

    def test_default_options_are_left_out(self, tmp_path):
        schema = tmp_path / "schema.json"
        schema.write_text("{}")
        with click.Context(model_schema_to_code) as ctx:
            ctx.params = {"target": "postgres", "config": None, "verbose": False, "path": str(schema)}
            assert reconstruct_command_line(model_schema_to_code) == "model_schema_to_code schema.json"


if __name__ == "__main__":
    pytest.main([__file__])
