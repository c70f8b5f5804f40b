"""Tests for configuration and image handles."""

import os

import pytest

from container_inventory.core.types import DEFAULT_ANALYZERS, AnalyzerConfig, Image
from container_inventory.exceptions import ConfigurationError


class TestAnalyzerConfig:
    """Test AnalyzerConfig."""

    def test_defaults(self):
        config = AnalyzerConfig()

        assert config.analyzers == DEFAULT_ANALYZERS
        assert config.save is False
        assert config.exclude == ()
        config.validate()

    def test_duplicates_removed_in_order(self):
        config = AnalyzerConfig(analyzers=["rpm", "apt", "rpm"], exclude=["/proc"])

        assert config.analyzers == ("rpm", "apt")
        assert config.exclude == ("/proc",)

    def test_unknown_analyzer(self):
        with pytest.raises(ConfigurationError, match="Argument pip is not a valid analyzer"):
            AnalyzerConfig(analyzers=("apt", "pip")).validate()

    def test_empty_analyzers(self):
        with pytest.raises(ConfigurationError):
            AnalyzerConfig(analyzers=()).validate()

    def test_missing_work_dir(self, tmp_path):
        with pytest.raises(ConfigurationError, match="Work directory"):
            AnalyzerConfig(work_dir=str(tmp_path / "missing")).validate()


class TestImage:
    """Test Image cleanup semantics."""

    def test_cleanup_removes_filesystem(self, tmp_path):
        fs_path = tmp_path / "fs"
        (fs_path / "etc").mkdir(parents=True)

        with Image(source="test", fs_path=str(fs_path)):
            pass

        assert not fs_path.exists()

    def test_save_keeps_filesystem(self, tmp_path):
        image = Image(source="test", fs_path=str(tmp_path), save=True)

        image.cleanup()

        assert os.path.isdir(tmp_path)

