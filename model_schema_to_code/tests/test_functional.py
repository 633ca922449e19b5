#!/usr/bin/env python3
"""
Functional tests driven by JSON case files.

Each file in test_data/functional/*_tests.json holds a list of cases:
a schema (inline or via schema_file), an optional config, and the
snippets expected in each target's output. Cases with expected_errors
must fail compilation with exactly those rules.
"""

import json
from pathlib import Path

import pytest

from model_schema_to_code import BACKENDS, CompilationError, PipelineGenerator
from model_schema_to_code.pipeline import CodeGeneratorConfig

TEST_DATA_DIR = Path(__file__).parent / "test_data"


def load_all_test_cases():
    """Load every case from the functional test data directory"""
    test_cases = []
    for test_file in sorted((TEST_DATA_DIR / "functional").glob("*_tests.json")):
        with open(test_file) as f:
            for case in json.load(f):
                case["_file"] = test_file.name
                test_cases.append(pytest.param(case, id=f"{test_file.stem}::{case['name']}"))
    return test_cases


def _load_schema(test_case):
    if "schema_file" in test_case:
        with open(TEST_DATA_DIR / test_case["schema_file"]) as f:
            return json.load(f)
    return test_case["schema"]


def _generate_code(schema, config_dict, target):
    config = CodeGeneratorConfig.from_dict(config_dict or {})
    result = PipelineGenerator(schema, config).generate_target(target)
    assert result.ok, "\n".join(e.format() for e in result.errors)
    return result.content


@pytest.mark.parametrize("test_case", load_all_test_cases())
def test_functional(test_case):
    print(f"\n{test_case['name']}: {test_case['description']}")
    schema = _load_schema(test_case)
    config_dict = test_case.get("config")

    if "expected_errors" in test_case:
        with pytest.raises(CompilationError) as excinfo:
            PipelineGenerator(schema, CodeGeneratorConfig.from_dict(config_dict or {})).compile()
        rules = sorted({d.rule for d in excinfo.value.diagnostics})
        assert rules == sorted(test_case["expected_errors"])
        return

    checked = False
    for target in BACKENDS:
        expected = test_case.get(f"expected_{target}")
        if expected is None:
            continue
        code = _generate_code(schema, config_dict, target)
        for snippet in expected:
            assert snippet in code, f"{target}: expected {snippet!r} in\n{code}"
        checked = True

    if "test_target" in test_case:
        code = _generate_code(schema, config_dict, test_case["test_target"])
        for snippet in test_case.get("expected_contains", []):
            assert snippet in code, f"expected {snippet!r} in\n{code}"
        for snippet in test_case.get("expected_not_contains", []):
            assert snippet not in code, f"did not expect {snippet!r} in\n{code}"
        checked = True

    assert checked, f"Case {test_case['name']} in {test_case['_file']} checks nothing"


if __name__ == "__main__":
    pytest.main([__file__])
