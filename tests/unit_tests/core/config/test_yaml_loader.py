###############################################################################
# Copyright (c) 2025, Advanced Micro Devices, Inc. All rights reserved.
#
# See LICENSE for license information.
###############################################################################

import pytest

from tpudoc.core.config.yaml_loader import _resolve_env_in_string, parse_yaml
from tpudoc.core.errors import ConfigurationError


class TestYamlLoader:
    def test_parse_yaml_basic(self, tmp_path):
        cfg_file = tmp_path / "config.yaml"
        cfg_file.write_text("check:\n  parallel: true\n  skip: [SEC-002]\n")

        assert parse_yaml(str(cfg_file), {}) == {"check": {"parallel": True, "skip": ["SEC-002"]}}

    def test_parse_yaml_empty(self, tmp_path):
        cfg_file = tmp_path / "empty.yaml"
        cfg_file.write_text("")

        with pytest.raises(ConfigurationError, match="is empty or invalid"):
            parse_yaml(str(cfg_file), {})

    def test_parse_yaml_not_a_mapping(self, tmp_path):
        cfg_file = tmp_path / "list.yaml"
        cfg_file.write_text("- a\n- b\n")

        with pytest.raises(ConfigurationError, match="mapping"):
            parse_yaml(str(cfg_file), {})

    def test_parse_yaml_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Cannot read config file"):
            parse_yaml(str(tmp_path / "nope.yaml"), {})

    def test_parse_yaml_syntax_error(self, tmp_path):
        cfg_file = tmp_path / "bad.yaml"
        cfg_file.write_text("check: [unclosed\n")

        with pytest.raises(ConfigurationError, match="Invalid YAML"):
            parse_yaml(str(cfg_file), {})

    def test_parse_yaml_extends(self, tmp_path):
        (tmp_path / "base.yaml").write_text("check:\n  parallel: false\n  timeout_ms: 1000\n")
        child = tmp_path / "child.yaml"
        child.write_text("extends:\n  - base.yaml\ncheck:\n  parallel: true\n")

        result = parse_yaml(str(child), {})
        assert result == {"check": {"parallel": True, "timeout_ms": 1000}}
        assert "extends" not in result

    def test_parse_yaml_extends_single_string(self, tmp_path):
        (tmp_path / "base.yaml").write_text("output:\n  format: json\n")
        child = tmp_path / "child.yaml"
        child.write_text("extends: base.yaml\n")

        assert parse_yaml(str(child), {}) == {"output": {"format": "json"}}

    def test_parse_yaml_multi_extends(self, tmp_path):
        (tmp_path / "base1.yaml").write_text("a: 1\nb: 1\n")
        (tmp_path / "base2.yaml").write_text("b: 2\nc: 2\n")
        main = tmp_path / "main.yaml"
        main.write_text("extends:\n  - base1.yaml\n  - base2.yaml\nc: 3\n")

        assert parse_yaml(str(main), {}) == {"a": 1, "b": 2, "c": 3}

    def test_parse_yaml_self_extends_is_bounded(self, tmp_path):
        loop = tmp_path / "loop.yaml"
        loop.write_text("extends: loop.yaml\n")

        with pytest.raises(ConfigurationError, match="nested deeper"):
            parse_yaml(str(loop), {})

    def test_parse_yaml_env_substitution(self, tmp_path):
        cfg_file = tmp_path / "env.yaml"
        cfg_file.write_text("check:\n  baseline: ${BASE_DIR}/baseline.json\n  timeout_ms: ${TIMEOUT:5000}\n")

        result = parse_yaml(str(cfg_file), {"BASE_DIR": "/var/lib/tpu-doc"})
        assert result == {"check": {"baseline": "/var/lib/tpu-doc/baseline.json", "timeout_ms": 5000}}

    def test_parse_yaml_defaults_to_process_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TPU_DOC_TEST_LEVEL", "DEBUG")
        cfg_file = tmp_path / "env.yaml"
        cfg_file.write_text("logging:\n  level: ${TPU_DOC_TEST_LEVEL}\n")

        assert parse_yaml(str(cfg_file)) == {"logging": {"level": "DEBUG"}}


class TestResolveEnvInString:
    def test_required_variable(self):
        assert _resolve_env_in_string("${HOST}", {"HOST": "tpu-vm"}) == "tpu-vm"

    def test_missing_required_variable(self):
        with pytest.raises(ConfigurationError, match="'MISSING' is required"):
            _resolve_env_in_string("${MISSING}", {})

    def test_default_value(self):
        assert _resolve_env_in_string("${MISSING:fallback}", {}) == "fallback"

    def test_numeric_conversion(self):
        assert _resolve_env_in_string("${N}", {"N": "42"}) == 42
        assert _resolve_env_in_string("${F:0.5}", {}) == 0.5

    def test_untouched_numeric_string_stays_string(self):
        assert _resolve_env_in_string("123", {}) == "123"
