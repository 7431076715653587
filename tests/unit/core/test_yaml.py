"""
Unit tests for core.yaml module.

Tests:
- Mapping documents, empty files and missing files
- Malformed YAML and non-mapping documents
- safe_load refusing Python object tags
"""

from pathlib import Path

import pytest

from meshcanary.core.exceptions import ConfigurationError
from meshcanary.core.yaml import load_yaml


def _write(tmp_path: Path, text: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadYaml:
    def test_mapping(self, tmp_path):
        path = _write(tmp_path, "interval: 60\nmetrics:\n  enabled: true\n  port: 8001\n")
        assert load_yaml(path) == {"interval": 60, "metrics": {"enabled": True, "port": 8001}}

    def test_accepts_str_path(self, tmp_path):
        path = _write(tmp_path, "max_concurrency: 8\n")
        assert load_yaml(str(path)) == {"max_concurrency": 8}

    def test_empty_file(self, tmp_path):
        assert load_yaml(_write(tmp_path, "")) == {}

    def test_comments_only(self, tmp_path):
        assert load_yaml(_write(tmp_path, "# nothing configured\n")) == {}

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Config file not found"):
            load_yaml(tmp_path / "absent.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path, "prober: [disco\n")
        with pytest.raises(ConfigurationError, match="invalid YAML"):
            load_yaml(path)

    def test_top_level_list(self, tmp_path):
        path = _write(tmp_path, "- one\n- two\n")
        with pytest.raises(ConfigurationError, match="must contain a mapping, got list"):
            load_yaml(path)

    def test_python_tags_rejected(self, tmp_path):
        path = _write(tmp_path, "value: !!python/object/apply:os.getcwd []\n")
        with pytest.raises(ConfigurationError):
            load_yaml(path)
