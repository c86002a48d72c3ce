"""Tests for derived context ids and the visited registry."""

import pytest

from contexthunt.explorer import ChildRef, InvariantViolation, VisitedRegistry, derive_context_id
from contexthunt.explorer.registry import is_back_edge, origin_of


class TestDeriveContextId:
    """Id derivation from (parent, discovery index)."""

    def test_positional_ids_are_one_based(self):
        """The first child of root is root/1."""
        assert derive_context_id("root", ChildRef(index=0)) == "root/1"
        assert derive_context_id("root/1", ChildRef(index=2)) == "root/1/3"

    def test_anchor_does_not_change_the_id(self):
        """Frames nested in each other under one name keep distinct ids."""
        ref = ChildRef(index=0, anchor="next")
        assert derive_context_id("root", ref) == "root/1"
        assert derive_context_id("root/1", ref) == "root/1/1"

    def test_derivation_is_deterministic(self):
        """Re-materializing the same child yields the same id."""
        first = derive_context_id("root/2", ChildRef(index=0, handle=object()))
        again = derive_context_id("root/2", ChildRef(index=0, handle=object()))
        assert first == again

    def test_every_ref_has_an_origin(self):
        """Anchored or not, an id is tied to its (parent, index)."""
        assert origin_of("root", ChildRef(index=1)) == ("root", 1)
        assert origin_of("root", ChildRef(index=1, anchor="x")) == ("root", 1)


class TestBackEdges:
    """Anchors only matter against the documents open on the current path."""

    def test_anchor_on_path_is_a_back_edge(self):
        """A frame loading an ancestor's document closes a cycle."""
        assert is_back_edge(ChildRef(index=0, anchor="a.html"), ("index.html", "a.html"))

    def test_anchor_off_path_is_not(self):
        """The same document elsewhere in the graph is its own context."""
        assert not is_back_edge(ChildRef(index=0, anchor="a.html"), ("index.html", "b.html"))

    def test_unanchored_ref_is_never_a_back_edge(self):
        """srcdoc and about:blank frames have no document identity."""
        assert not is_back_edge(ChildRef(index=0), ("index.html",))


class TestVisitedRegistry:
    """The visited set and its collision checks."""

    def test_mark_seen_is_idempotent(self):
        """Marking twice keeps one entry."""
        registry = VisitedRegistry()
        registry.mark_seen("root")
        registry.mark_seen("root")
        assert registry.size() == 1
        assert registry.seen("root")
        assert "root" in registry
        assert len(registry) == 1

    def test_ids_keep_visit_order(self):
        """ids() lists contexts in the order they were marked."""
        registry = VisitedRegistry()
        for cid in ("root", "root/2", "root/1"):
            registry.mark_seen(cid)
        assert registry.ids() == ["root", "root/2", "root/1"]

    def test_unseen_id(self):
        """Nothing is seen in a fresh registry."""
        assert not VisitedRegistry().seen("root")

    def test_same_origin_is_not_a_collision(self):
        """Re-deriving an id from its own origin is fine."""
        registry = VisitedRegistry()
        registry.mark_seen("root/1", ("root", 0))
        registry.check("root/1", ("root", 0))
        registry.mark_seen("root/1", ("root", 0))
        assert registry.size() == 1

    def test_different_origin_is_a_collision(self):
        """One id claimed by two origins means the id scheme is broken."""
        registry = VisitedRegistry()
        registry.mark_seen("root/1", ("root", 0))
        with pytest.raises(InvariantViolation):
            registry.check("root/1", ("root", 1))

    def test_root_claimed_by_a_child_is_a_collision(self):
        """The root has no origin, so no derived id may reuse it."""
        registry = VisitedRegistry()
        registry.mark_seen("root")
        with pytest.raises(InvariantViolation):
            registry.check("root", ("root", 0))

    @pytest.mark.parametrize("bad_id", ["", None, 3])
    def test_invalid_ids_are_rejected(self, bad_id):
        """Derived ids must be non-empty strings."""
        with pytest.raises(InvariantViolation):
            VisitedRegistry().mark_seen(bad_id)
