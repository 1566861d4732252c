"""
Test Environment Configuration
==============================

Unit tests for StorageConfig and environment selection.
"""

import pytest
import os
from pathlib import Path
from unittest.mock import patch

from memfuse.config import (
    PROD_ENV,
    TEST_ENV,
    StorageConfig,
    get_all_environments,
    get_current_environment,
    get_environment_config,
    set_current_environment,
)


@pytest.fixture
def clean_env():
    """Environment without MEMFUSE_* variables; restores the active environment."""
    keys = ("MEMFUSE_ENV", "MEMFUSE_MEMORY_DIR", "MEMFUSE_EMBEDDING_DIM")
    env = {k: v for k, v in os.environ.items() if k not in keys}
    with patch.dict(os.environ, env, clear=True):
        yield
        set_current_environment(TEST_ENV)


class TestStorageConfig:
    """Test StorageConfig dataclass."""

    def test_default_values(self, clean_env):
        config = StorageConfig(name="test", memory_dir=Path("/data/memory"))

        assert config.dimensions == 768
        assert config.vectors_subdir == "vectors"
        assert config.index_filename == "chain-index.json"

    def test_derived_paths(self):
        config = StorageConfig(name="test", memory_dir=Path("/data/memory"), dimensions=4)

        assert config.vector_dir == Path("/data/memory/vectors")
        assert config.index_path == Path("/data/memory/chain-index.json")

    def test_dimensions_from_env(self, clean_env):
        with patch.dict(os.environ, {"MEMFUSE_EMBEDDING_DIM": "384"}):
            config = StorageConfig(name="test", memory_dir=Path("m"))
            assert config.dimensions == 384

    def test_frozen(self):
        config = StorageConfig(name="test", memory_dir=Path("m"), dimensions=4)
        with pytest.raises(AttributeError):
            config.dimensions = 8


class TestEnvironments:
    """Test environment selection."""

    def test_default_directories(self, clean_env):
        assert get_environment_config(TEST_ENV).memory_dir == Path(".memfuse/test")
        assert get_environment_config(PROD_ENV).memory_dir == Path(".memfuse/prod")

    def test_memory_dir_from_env(self, clean_env, tmp_path):
        with patch.dict(os.environ, {"MEMFUSE_MEMORY_DIR": str(tmp_path)}):
            assert get_environment_config(PROD_ENV).memory_dir == tmp_path

    def test_current_defaults_to_test(self, clean_env):
        assert get_current_environment().name == "test"

    def test_set_current_environment(self, clean_env):
        set_current_environment(PROD_ENV)
        assert get_current_environment().name == "prod"

    def test_env_var_overrides_current(self, clean_env):
        set_current_environment(TEST_ENV)
        with patch.dict(os.environ, {"MEMFUSE_ENV": "PROD"}):
            assert get_current_environment().name == "prod"

    def test_all_environments(self, clean_env):
        assert set(get_all_environments()) == {"test", "prod"}
