"""
Environment Configuration
=========================

Storage locations for memfuse, with test/prod separation.

Usage:
    from memfuse.config import get_environment_config, TEST_ENV, PROD_ENV

    config = get_environment_config(TEST_ENV)
    print(config.memory_dir)       # ".memfuse/test"

    set_current_environment(PROD_ENV)
    config = get_current_environment()
    print(config.name)             # "prod"

Environment Variables:
    MEMFUSE_ENV: Force the active environment ("test" or "prod")
    MEMFUSE_MEMORY_DIR: Root memory directory (overrides the per-environment default)
    MEMFUSE_EMBEDDING_DIM: Embedding dimension (default: 768)
"""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict


def _get_env_str(key: str, default: str) -> str:
    """Read an environment variable as a string."""
    return os.environ.get(key, default)


def _get_env_int(key: str, default: int) -> int:
    """Read an environment variable as an int."""
    return int(os.environ.get(key, default))


class Environment(Enum):
    """Available environments."""
    TEST = "test"
    PROD = "prod"


# Convenience aliases
TEST_ENV = Environment.TEST
PROD_ENV = Environment.PROD


@dataclass(frozen=True)
class StorageConfig:
    """
    Where and how a memfuse instance stores its data.

    Attributes:
        name: Environment name ("test" or "prod")
        memory_dir: Root memory directory
        dimensions: Embedding dimension D
        vectors_subdir: Directory (under memory_dir) for partition files
        index_filename: Adjacency index file (under memory_dir)
        description: Human-readable description
    """
    name: str
    memory_dir: Path
    dimensions: int = field(default_factory=lambda: _get_env_int("MEMFUSE_EMBEDDING_DIM", 768))
    vectors_subdir: str = "vectors"
    index_filename: str = "chain-index.json"
    description: str = ""

    @property
    def vector_dir(self) -> Path:
        return self.memory_dir / self.vectors_subdir

    @property
    def index_path(self) -> Path:
        return self.memory_dir / self.index_filename


_DEFAULT_DIRS = {
    Environment.TEST: ".memfuse/test",
    Environment.PROD: ".memfuse/prod",
}

_DESCRIPTIONS = {
    Environment.TEST: "Test environment for experiments and local runs",
    Environment.PROD: "Production memory store",
}

# Current active environment (default: test for safety)
_current_environment: Environment = Environment.TEST


def get_environment_config(env: Environment) -> StorageConfig:
    """
    Get the storage configuration for an environment.

    MEMFUSE_MEMORY_DIR, when set, replaces the default directory.

    Example:
        config = get_environment_config(TEST_ENV)
        print(config.index_path)  # ".memfuse/test/chain-index.json"
    """
    memory_dir = _get_env_str("MEMFUSE_MEMORY_DIR", "") or _DEFAULT_DIRS[env]
    return StorageConfig(
        name=env.value,
        memory_dir=Path(memory_dir),
        description=_DESCRIPTIONS[env],
    )


def get_current_environment() -> StorageConfig:
    """
    Get the configuration of the active environment.

    The active environment can be set via set_current_environment() or
    overridden by the MEMFUSE_ENV environment variable.
    """
    env_var = os.environ.get("MEMFUSE_ENV", "").lower()
    if env_var == "prod":
        return get_environment_config(Environment.PROD)
    elif env_var == "test":
        return get_environment_config(Environment.TEST)

    return get_environment_config(_current_environment)


def set_current_environment(env: Environment) -> None:
    """Set the active environment."""
    global _current_environment
    _current_environment = env


def get_all_environments() -> Dict[str, StorageConfig]:
    """All environment configurations keyed by name."""
    return {env.value: get_environment_config(env) for env in Environment}
