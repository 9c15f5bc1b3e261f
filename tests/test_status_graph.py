"""Unit tests for the fleet, part and reservation status graphs."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from collision_os.services.status_graph import (
    FLEET_GRAPH,
    PART_GRAPH,
    RESERVATION_GRAPH,
    Category,
    FleetStatus,
    PartStatus,
    StatusGraph,
    get_graph,
)


class TestStatusGraph:
    @pytest.mark.parametrize("graph", [FLEET_GRAPH, PART_GRAPH, RESERVATION_GRAPH])
    def test_closed_under_successors(self, graph):
        for node in graph.nodes:
            assert graph.successors(node) <= graph.nodes

    def test_fleet_lifecycle_edges(self):
        assert FLEET_GRAPH.can_transition("available", "reserved")
        assert FLEET_GRAPH.can_transition(FleetStatus.RESERVED, FleetStatus.RENTED)
        assert FLEET_GRAPH.can_transition("rented", "maintenance")
        assert not FLEET_GRAPH.can_transition("available", "rented")
        assert FLEET_GRAPH.is_terminal("out_of_service")
        assert FLEET_GRAPH.successors("out_of_service") == frozenset()

    def test_part_has_no_shortcut_to_installed(self):
        assert not PART_GRAPH.can_transition(PartStatus.ORDERED, PartStatus.INSTALLED)
        assert PART_GRAPH.can_transition("received", "installed")

    def test_part_reversal_edges(self):
        assert PART_GRAPH.can_transition("cancelled", "needed")
        assert PART_GRAPH.can_transition("returned", "needed")

    def test_unknown_status_has_no_successors(self):
        assert not PART_GRAPH.can_transition("lost", "needed")
        assert "lost" not in PART_GRAPH

    def test_get_graph(self):
        assert get_graph(Category.FLEET) is FLEET_GRAPH
        assert get_graph("reservation") is RESERVATION_GRAPH
        with pytest.raises(ValueError):
            get_graph("invoice")

    def test_rejects_edge_to_undeclared_status(self):
        with pytest.raises(ValueError):
            StatusGraph("demo", {"a": {"b"}}, initial="a")
