"""
Test RelationshipGraphStore
===========================

Mirrored link insertion, persistence of the adjacency index and
breadth-first chain traversal.
"""

import json
import pytest
from concurrent.futures import ThreadPoolExecutor

from memfuse.storage.diagnostics import DiagnosticKind
from memfuse.storage.graph import (
    LinkType,
    RelationshipGraphStore,
    RelationshipLink,
    reverse_link_type,
)


@pytest.fixture
def diamond(graph_store):
    """A-B, A-C, B-D, C-D, D-E, all at strength 0.8."""
    for a, b in [("A", "B"), ("A", "C"), ("B", "D"), ("C", "D"), ("D", "E")]:
        graph_store.add_link(a, b, LinkType.SEQUENTIAL, strength=0.8)
    return graph_store


class TestLinkModels:
    def test_reverse_link_type(self):
        assert reverse_link_type(LinkType.PARENT) == LinkType.CHILD
        assert reverse_link_type(LinkType.CHILD) == LinkType.PARENT
        for link_type in (LinkType.RELATED, LinkType.SEQUENTIAL, LinkType.CAUSAL, LinkType.REFERENCE):
            assert reverse_link_type(link_type) == link_type

    def test_link_dict_uses_camel_case(self):
        link = RelationshipLink("a", "b", LinkType.CAUSAL, 0.7, created_at=1700000000000)
        assert link.to_dict() == {
            "fromId": "a",
            "toId": "b",
            "linkType": "causal",
            "strength": 0.7,
            "createdAt": 1700000000000,
        }
        assert RelationshipLink.from_dict(link.to_dict()) == link

    def test_link_from_dict_rejects_unknown_type(self):
        with pytest.raises(ValueError):
            RelationshipLink.from_dict({
                "fromId": "a", "toId": "b", "linkType": "sibling",
                "strength": 0.5, "createdAt": 0,
            })


class TestAddLink:
    """Mirrored, first-write-wins insertion."""

    def test_parent_link_mirrored_as_child(self, graph_store):
        assert graph_store.add_link("x", "y", LinkType.PARENT, strength=0.8) is True

        [forward] = graph_store.get_links("x")
        [reverse] = graph_store.get_links("y")

        assert (forward.to_id, forward.link_type, forward.strength) == ("y", LinkType.PARENT, 0.8)
        assert (reverse.to_id, reverse.link_type, reverse.strength) == ("x", LinkType.CHILD, 0.8)
        assert forward.created_at == reverse.created_at

    def test_symmetric_type_mirrored_unchanged(self, graph_store):
        graph_store.add_link("x", "y", LinkType.CAUSAL, strength=0.6)

        [reverse] = graph_store.get_links("y")
        assert reverse.link_type == LinkType.CAUSAL
        assert reverse.strength == 0.6

    def test_string_link_type(self, graph_store):
        graph_store.add_link("x", "y", "reference", strength=0.4)
        assert graph_store.get_links("x")[0].link_type == LinkType.REFERENCE

    def test_first_write_wins(self, graph_store):
        """A second add for the same pair is not an upsert."""
        graph_store.add_link("x", "y", LinkType.RELATED, strength=0.5)

        assert graph_store.add_link("x", "y", LinkType.CAUSAL, strength=0.9) is False

        [forward] = graph_store.get_links("x")
        assert (forward.link_type, forward.strength) == (LinkType.RELATED, 0.5)
        assert len(graph_store.get_links("y")) == 1

    def test_existing_reverse_edge_kept(self, graph_store):
        graph_store.add_link("y", "x", LinkType.SEQUENTIAL, strength=0.2)
        graph_store.add_link("x", "y", LinkType.PARENT, strength=0.9)

        [edge] = graph_store.get_links("y")
        assert (edge.link_type, edge.strength) == (LinkType.SEQUENTIAL, 0.2)

    def test_invalid_strength(self, graph_store):
        with pytest.raises(ValueError, match="strength"):
            graph_store.add_link("x", "y", strength=1.5)
        with pytest.raises(ValueError, match="strength"):
            graph_store.add_link("x", "y", strength=-0.1)

    def test_invalid_link_type(self, graph_store):
        with pytest.raises(ValueError):
            graph_store.add_link("x", "y", "sibling", strength=0.5)

    def test_metadata_copied_to_both_edges(self, graph_store):
        graph_store.add_link("x", "y", strength=0.5, metadata={"reason": "same topic"})

        assert graph_store.get_links("x")[0].metadata == {"reason": "same topic"}
        assert graph_store.get_links("y")[0].metadata == {"reason": "same topic"}

    def test_get_links_unknown_node(self, graph_store):
        assert graph_store.get_links("nobody") == []

    def test_concurrent_adds_lose_no_edges(self, graph_store):
        def add(i):
            graph_store.add_link("hub", f"n{i}", strength=0.5)

        with ThreadPoolExecutor(max_workers=8) as pool:
            list(pool.map(add, range(40)))

        assert len(graph_store.get_links("hub")) == 40
        index = graph_store.load_index()
        assert all(len(index[f"n{i}"]) == 1 for i in range(40))


class TestPersistence:
    """The adjacency index on disk."""

    def test_index_document_layout(self, graph_store):
        graph_store.add_link("x", "y", LinkType.PARENT, strength=0.8)

        document = json.loads(graph_store.index_path.read_text())

        assert set(document) == {"x", "y"}
        entry = document["x"][0]
        assert set(entry) == {"fromId", "toId", "linkType", "strength", "createdAt"}
        assert entry["linkType"] == "parent"
        assert document["y"][0]["linkType"] == "child"

    def test_index_shared_between_instances(self, graph_store, memory_dir):
        graph_store.add_link("x", "y", strength=0.5)

        other = RelationshipGraphStore(memory_dir)
        assert [l.to_id for l in other.get_links("x")] == ["y"]

    def test_missing_directory_created_on_write(self, memory_dir, diagnostics):
        store = RelationshipGraphStore(memory_dir / "nested", diagnostics=diagnostics)
        store.add_link("x", "y", strength=0.5)

        assert store.index_path.exists()
        assert len(diagnostics.of_kind(DiagnosticKind.STORAGE_UNAVAILABLE)) == 1

    def test_no_temp_files_left(self, graph_store):
        graph_store.add_link("x", "y", strength=0.5)
        graph_store.add_link("y", "z", strength=0.5)

        leftovers = [p for p in graph_store.memory_dir.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_corrupt_index_is_empty_graph(self, graph_store, diagnostics):
        graph_store.memory_dir.mkdir(parents=True, exist_ok=True)
        graph_store.index_path.write_text("{not json")

        assert graph_store.load_index() == {}
        assert graph_store.traverse_chain("x") == []
        assert len(diagnostics.of_kind(DiagnosticKind.MALFORMED_RECORD)) == 2

    def test_malformed_links_dropped(self, graph_store, diagnostics):
        graph_store.memory_dir.mkdir(parents=True, exist_ok=True)
        good = {"fromId": "x", "toId": "y", "linkType": "related", "strength": 0.5, "createdAt": 1}
        graph_store.index_path.write_text(json.dumps({
            "x": [good, {"fromId": "x"}],
            "z": "not a list",
        }))

        index = graph_store.load_index()

        assert list(index) == ["x"]
        assert [l.to_id for l in index["x"]] == ["y"]
        assert len(diagnostics.of_kind(DiagnosticKind.MALFORMED_RECORD)) == 2

    def test_invalid_utf8_index_is_empty_graph(self, graph_store, diagnostics):
        graph_store.memory_dir.mkdir(parents=True, exist_ok=True)
        graph_store.index_path.write_bytes(b'{"x": [\xff\xfe]}')

        assert graph_store.get_links("x") == []
        [diagnostic] = diagnostics.of_kind(DiagnosticKind.MALFORMED_RECORD)
        assert "UTF-8" in diagnostic.message

        # The next write replaces the unreadable document
        assert graph_store.add_link("x", "y", strength=0.5) is True
        assert [l.to_id for l in graph_store.get_links("x")] == ["y"]

    def test_deeply_nested_index_is_empty_graph(self, graph_store, diagnostics):
        graph_store.memory_dir.mkdir(parents=True, exist_ok=True)
        graph_store.index_path.write_text("[" * 100000 + "]" * 100000)

        assert graph_store.load_index() == {}
        assert len(diagnostics.of_kind(DiagnosticKind.MALFORMED_RECORD)) == 1

    def test_overflowing_created_at_dropped(self, graph_store, diagnostics):
        graph_store.memory_dir.mkdir(parents=True, exist_ok=True)
        good = {"fromId": "x", "toId": "y", "linkType": "related", "strength": 0.9, "createdAt": 1}
        graph_store.index_path.write_text(
            '{"x": [%s, {"fromId": "x", "toId": "z", "linkType": "related", '
            '"strength": 0.9, "createdAt": 1e999}]}' % json.dumps(good)
        )

        results = graph_store.traverse_chain("x")

        assert [r.id for r in results] == ["y"]
        assert len(diagnostics.of_kind(DiagnosticKind.MALFORMED_RECORD)) == 1


class TestRemoval:
    def test_remove_link_is_directed(self, graph_store):
        graph_store.add_link("x", "y", strength=0.5)

        assert graph_store.remove_link("x", "y") is True

        assert graph_store.get_links("x") == []
        assert [l.to_id for l in graph_store.get_links("y")] == ["x"]

    def test_remove_missing_link(self, graph_store):
        assert graph_store.remove_link("x", "y") is False

    def test_unlink_removes_both_directions(self, graph_store):
        graph_store.add_link("x", "y", strength=0.5)
        graph_store.add_link("x", "z", strength=0.5)

        assert graph_store.unlink("y", "x") == 2

        assert [l.to_id for l in graph_store.get_links("x")] == ["z"]
        assert graph_store.get_links("y") == []
        assert graph_store.unlink("x", "y") == 0


class TestTraverseChain:
    """Breadth-first traversal with dequeue-time visited marking."""

    def test_zero_hops(self, graph_store):
        graph_store.add_link("x", "y", strength=0.9)
        assert graph_store.traverse_chain("x", max_hops=0) == []

    def test_unknown_start(self, graph_store):
        assert graph_store.traverse_chain("nobody") == []

    def test_weak_edges_not_followed(self, graph_store):
        """x -> y (0.9) -> z (0.4) with min 0.5 reaches only y."""
        graph_store.add_link("x", "y", LinkType.SEQUENTIAL, strength=0.9)
        graph_store.add_link("y", "z", LinkType.SEQUENTIAL, strength=0.4)

        results = graph_store.traverse_chain("x", max_hops=2, min_strength=0.5)

        assert [(r.id, r.hop_distance) for r in results] == [("y", 1)]

    def test_strength_at_threshold_is_followed(self, graph_store):
        graph_store.add_link("x", "y", strength=0.5)
        assert [r.id for r in graph_store.traverse_chain("x", min_strength=0.5)] == ["y"]

    def test_paths_and_fields(self, graph_store):
        graph_store.add_link("a", "b", LinkType.CAUSAL, strength=0.9)
        graph_store.add_link("b", "c", LinkType.PARENT, strength=0.6)

        results = graph_store.traverse_chain("a", max_hops=3, min_strength=0.3)

        assert [r.path for r in results] == ["a -> b", "a -> b -> c"]
        last = results[-1]
        assert (last.id, last.link_type, last.link_strength, last.hop_distance) == (
            "c", LinkType.PARENT, 0.6, 2,
        )
        assert last.discovered_at == graph_store.get_links("b")[-1].created_at

    def test_max_hops_limits_depth(self, graph_store):
        graph_store.add_link("a", "b", strength=0.9)
        graph_store.add_link("b", "c", strength=0.9)
        graph_store.add_link("c", "d", strength=0.9)

        results = graph_store.traverse_chain("a", max_hops=2)

        assert [r.id for r in results] == ["b", "c"]
        assert all(r.hop_distance <= 2 for r in results)

    def test_start_never_emitted(self, diamond):
        results = diamond.traverse_chain("A", max_hops=3)
        assert "A" not in [r.id for r in results]

    def test_diamond_emits_rejoined_node_per_edge(self, diamond):
        """D is reached from both B and C before it is dequeued."""
        results = diamond.traverse_chain("A", max_hops=3, min_strength=0.3)

        assert [r.id for r in results] == ["B", "C", "D", "D", "E"]
        assert [r.hop_distance for r in results] == [1, 1, 2, 2, 3]
        assert [r.path for r in results if r.id == "D"] == ["A -> B -> D", "A -> C -> D"]

    def test_preloaded_index(self, graph_store):
        graph_store.add_link("x", "y", strength=0.9)
        snapshot = graph_store.load_index()
        graph_store.add_link("x", "z", strength=0.9)

        assert [r.id for r in graph_store.traverse_chain("x", index=snapshot)] == ["y"]
        assert [r.id for r in graph_store.traverse_chain("x")] == ["y", "z"]


class TestFindRelated:
    @pytest.fixture
    def mixed(self, graph_store):
        graph_store.add_link("m", "p", LinkType.PARENT, strength=0.9)
        graph_store.add_link("m", "c", LinkType.CAUSAL, strength=0.9)
        graph_store.add_link("m", "r", LinkType.RELATED, strength=0.9)
        return graph_store

    def test_filter_by_enum(self, mixed):
        results = mixed.find_related("m", link_types=[LinkType.CAUSAL])
        assert [r.id for r in results] == ["c"]

    def test_filter_by_string(self, mixed):
        results = mixed.find_related("m", link_types=["parent", "related"])
        assert [r.id for r in results] == ["p", "r"]

    def test_no_filter_means_all_types(self, mixed):
        assert [r.id for r in mixed.find_related("m")] == ["p", "c", "r"]
        assert [r.id for r in mixed.find_related("m", link_types=[])] == ["p", "c", "r"]
