# collision_os/services/status_graph.py
"""
Status graphs for every workflow category.

One adjacency table per category maps each status to the set of statuses it
may move to. Loaner vehicles, part lines and loaner reservations all share
the same StatusGraph shape, so the transition validator never needs to know
which category it is working on beyond picking the right table.

Fleet:        available → reserved → rented → (available | maintenance) → out_of_service
Parts:        needed → sourcing → ordered → (backordered | received) → installed → returned / cancelled
Reservation:  confirmed → active → completed, confirmed → cancelled
"""

from enum import Enum
from typing import Dict, FrozenSet, Iterable, Mapping


class FleetStatus(str, Enum):
    AVAILABLE = "available"
    RESERVED = "reserved"
    RENTED = "rented"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"


class PartStatus(str, Enum):
    NEEDED = "needed"
    SOURCING = "sourcing"
    ORDERED = "ordered"
    BACKORDERED = "backordered"
    RECEIVED = "received"
    INSTALLED = "installed"
    RETURNED = "returned"
    CANCELLED = "cancelled"


class ReservationStatus(str, Enum):
    CONFIRMED = "confirmed"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Category(str, Enum):
    FLEET = "fleet"
    PART = "part"
    RESERVATION = "reservation"


def status_value(status) -> str:
    """Plain string form of a status, whether given as an enum member or a string."""
    if isinstance(status, Enum):
        return status.value
    return str(status) if status is not None else ""


class StatusGraph:
    """Directed status graph with a designated initial state and terminal states."""

    def __init__(self, category: str, edges: Mapping, initial, terminal: Iterable = ()):
        self.category = status_value(category)
        self._edges: Dict[str, FrozenSet[str]] = {
            status_value(src): frozenset(status_value(dst) for dst in dsts)
            for src, dsts in edges.items()
        }
        self.initial = status_value(initial)
        self.terminal = frozenset(status_value(s) for s in terminal)

        unknown = set().union(*self._edges.values()) - set(self._edges)
        if unknown:
            raise ValueError(f"{self.category} graph has edges to undeclared statuses: {sorted(unknown)}")
        if self.initial not in self._edges:
            raise ValueError(f"{self.category} graph initial status '{self.initial}' is not a node")

    @property
    def nodes(self) -> FrozenSet[str]:
        return frozenset(self._edges)

    def successors(self, status) -> FrozenSet[str]:
        return self._edges.get(status_value(status), frozenset())

    def can_transition(self, current, target) -> bool:
        return status_value(target) in self.successors(current)

    def is_terminal(self, status) -> bool:
        return status_value(status) in self.terminal

    def __contains__(self, status) -> bool:
        return status_value(status) in self._edges

    def __repr__(self):
        return f"<StatusGraph {self.category} nodes={len(self._edges)}>"


FLEET_GRAPH = StatusGraph(
    Category.FLEET,
    {
        FleetStatus.AVAILABLE: {FleetStatus.RESERVED, FleetStatus.MAINTENANCE, FleetStatus.OUT_OF_SERVICE},
        FleetStatus.RESERVED: {FleetStatus.RENTED, FleetStatus.AVAILABLE},
        FleetStatus.RENTED: {FleetStatus.AVAILABLE, FleetStatus.MAINTENANCE},
        FleetStatus.MAINTENANCE: {FleetStatus.AVAILABLE, FleetStatus.OUT_OF_SERVICE},
        FleetStatus.OUT_OF_SERVICE: set(),
    },
    initial=FleetStatus.AVAILABLE,
    terminal={FleetStatus.OUT_OF_SERVICE},
)

PART_GRAPH = StatusGraph(
    Category.PART,
    {
        PartStatus.NEEDED: {PartStatus.SOURCING, PartStatus.ORDERED, PartStatus.CANCELLED},
        PartStatus.SOURCING: {PartStatus.ORDERED, PartStatus.NEEDED, PartStatus.CANCELLED},
        PartStatus.ORDERED: {PartStatus.BACKORDERED, PartStatus.RECEIVED, PartStatus.CANCELLED},
        PartStatus.BACKORDERED: {PartStatus.RECEIVED, PartStatus.CANCELLED},
        PartStatus.RECEIVED: {PartStatus.INSTALLED, PartStatus.RETURNED},
        PartStatus.INSTALLED: {PartStatus.RETURNED},          # defective installed parts go back
        PartStatus.RETURNED: {PartStatus.NEEDED, PartStatus.CANCELLED},
        PartStatus.CANCELLED: {PartStatus.NEEDED},            # reactivation
    },
    initial=PartStatus.NEEDED,
    terminal={PartStatus.INSTALLED, PartStatus.RETURNED, PartStatus.CANCELLED},
)

RESERVATION_GRAPH = StatusGraph(
    Category.RESERVATION,
    {
        ReservationStatus.CONFIRMED: {ReservationStatus.ACTIVE, ReservationStatus.CANCELLED},
        ReservationStatus.ACTIVE: {ReservationStatus.COMPLETED},
        ReservationStatus.COMPLETED: set(),
        ReservationStatus.CANCELLED: set(),
    },
    initial=ReservationStatus.CONFIRMED,
    terminal={ReservationStatus.COMPLETED, ReservationStatus.CANCELLED},
)

GRAPHS: Dict[str, StatusGraph] = {
    g.category: g for g in (FLEET_GRAPH, PART_GRAPH, RESERVATION_GRAPH)
}


def get_graph(category) -> StatusGraph:
    key = status_value(category)
    if key not in GRAPHS:
        raise ValueError(f"Unknown workflow category: {key!r}")
    return GRAPHS[key]
