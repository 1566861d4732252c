"""
Weight Store
============

Loads retrieval weights from YAML, with built-in defaults as fallback.

Load order:
1. Runtime overrides (update_runtime), no restart needed
2. YAML config (weights.yaml next to this module, or a given path)
3. Built-in defaults when the YAML is missing, unreadable or invalid

Architecture:
    YAML (default) -> WeightStore -> RetrievalConfig -> HybridRetriever
                          |
                   Runtime overrides
"""

import structlog
import yaml
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import ValidationError

from memfuse.storage.diagnostics import (
    Diagnostic,
    DiagnosticKind,
    DiagnosticsSink,
    LoggingDiagnosticsSink,
)
from memfuse.storage.retriever.models import RetrievalConfig
from memfuse.weights.config import RetrievalWeights

log = structlog.get_logger()


class WeightStore:
    """
    Central access to retrieval weights.

    Example:
        >>> store = WeightStore()
        >>> store.get_retrieval_weights().chain_weight
        0.3
        >>> config = store.get_retrieval_config(max_hops=3)
        >>> config.max_hops
        3
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        diagnostics: Optional[DiagnosticsSink] = None,
    ):
        """
        Initialize WeightStore.

        Args:
            config_path: YAML file to read. If None, uses the packaged default.
            diagnostics: Sink for invalid-config reports (default: structlog)
        """
        self.config_path = Path(config_path) if config_path else self._get_default_config_path()
        self.diagnostics = diagnostics or LoggingDiagnosticsSink()
        self._yaml_config: Optional[Dict[str, Any]] = None
        self._weights: Optional[RetrievalWeights] = None
        self._runtime_overrides: Dict[str, Any] = {}

        log.info("WeightStore initialized", config_path=str(self.config_path))

    def _get_default_config_path(self) -> Path:
        """Packaged weights.yaml."""
        return Path(__file__).parent / "config" / "weights.yaml"

    def _load_yaml_config(self) -> Dict[str, Any]:
        """Read the YAML file, falling back to defaults."""
        if self._yaml_config is not None:
            return self._yaml_config

        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except FileNotFoundError:
            log.warning("Weights config not found, using defaults", path=str(self.config_path))
            data = self._get_default_config()
        except (OSError, yaml.YAMLError) as e:
            log.error("Error loading weights config", path=str(self.config_path), error=str(e))
            data = self._get_default_config()

        if not isinstance(data, dict):
            log.error("Weights config is not a mapping, using defaults", path=str(self.config_path))
            data = self._get_default_config()

        self._yaml_config = data
        return data

    def _get_default_config(self) -> Dict[str, Any]:
        """Defaults used when the YAML is not available."""
        return {"retrieval": RetrievalWeights().model_dump()}

    def get_retrieval_weights(self) -> RetrievalWeights:
        """
        Validated retrieval weights.

        An invalid ``retrieval`` section is reported as INVALID_CONFIG and
        replaced by defaults.
        """
        if self._weights is not None:
            return self._weights

        data = self._load_yaml_config().get("retrieval") or {}
        try:
            weights = RetrievalWeights.model_validate(data)
        except ValidationError as e:
            self.diagnostics.report(Diagnostic(
                kind=DiagnosticKind.INVALID_CONFIG,
                message=f"invalid retrieval weights, using defaults: {e.error_count()} error(s)",
                source=str(self.config_path),
            ))
            weights = RetrievalWeights()

        self._weights = weights
        return weights

    def get_retrieval_config(self, **overrides: Any) -> RetrievalConfig:
        """
        RetrievalConfig from YAML weights, runtime overrides, then ``overrides``.

        Raises:
            InvalidConfigError: unknown key or out-of-range override
        """
        base = RetrievalConfig(**self.get_retrieval_weights().to_config_kwargs())
        if self._runtime_overrides:
            base = RetrievalConfig.from_overrides(base, **self._runtime_overrides)
        return RetrievalConfig.from_overrides(base, **overrides)

    def update_runtime(self, updates: Dict[str, Any]) -> None:
        """
        Apply RetrievalConfig overrides in memory (no persistence).

        Validated immediately, so a bad value fails here rather than at the
        next get_retrieval_config().
        """
        merged = {**self._runtime_overrides, **updates}
        RetrievalConfig.from_overrides(
            RetrievalConfig(**self.get_retrieval_weights().to_config_kwargs()),
            **merged,
        )
        self._runtime_overrides = merged
        log.info("Runtime weight update applied", updates=updates)

    def reset_runtime(self) -> None:
        """Drop runtime overrides and re-read the YAML on next access."""
        self._runtime_overrides.clear()
        self._yaml_config = None
        self._weights = None


# Singleton instance
_default_store: Optional[WeightStore] = None


def get_weight_store() -> WeightStore:
    """Return the process-wide WeightStore."""
    global _default_store
    if _default_store is None:
        _default_store = WeightStore()
    return _default_store
