"""
memfuse Test Configuration
==========================

Shared fixtures for all tests.
"""

import pytest
from datetime import datetime, timezone


# Diagnostics
@pytest.fixture
def diagnostics():
    """Sink that keeps every tolerated storage problem."""
    from memfuse.storage.diagnostics import CollectingDiagnosticsSink
    return CollectingDiagnosticsSink()


# File-backed stores
@pytest.fixture
def memory_dir(tmp_path):
    """Empty memory directory (not created yet)."""
    return tmp_path / "memory"


@pytest.fixture
def embedding_store(memory_dir, diagnostics):
    """EmbeddingStore with 4-dimensional vectors."""
    from memfuse.storage.vectors import EmbeddingStore
    return EmbeddingStore(memory_dir, dimensions=4, diagnostics=diagnostics)


@pytest.fixture
def graph_store(memory_dir, diagnostics):
    """RelationshipGraphStore under the same memory directory."""
    from memfuse.storage.graph import RelationshipGraphStore
    return RelationshipGraphStore(memory_dir, diagnostics=diagnostics)


@pytest.fixture
def retriever(embedding_store, graph_store):
    """HybridRetriever with recency decay off, so scores are easy to predict."""
    from memfuse.storage.retriever import HybridRetriever
    return HybridRetriever(embedding_store, graph_store, recency_boost=False)


# Sample data
@pytest.fixture
def reference_time():
    """Fixed "now" for recency calculations."""
    return datetime(2026, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def sample_timestamp():
    """Timestamp 24 hours before reference_time."""
    return "2026-10-17T12:00:00+00:00"
