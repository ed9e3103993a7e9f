# File: schemarules/graph.py
"""
SchemaRules - Extension Graph
==============================
Builds and analyses the **extension graph** of a schema: the directed graph
with an edge ``A → B`` whenever a foreign key of ``A`` maps ``A``'s entire
primary key, column for column and in order, onto ``B``'s primary key
(joined-table inheritance).

The graph is stored as an index-addressed adjacency structure: tables are
interned to integer positions (schema declaration order) and edges are kept
as per-node lists of integers.  Multiple parents (diamonds) and self-loops
are representable; the builder never fails.

Analyses provided here and consumed by the extension rules:

- strongly connected components that contain a cycle (self-loops included),
- redundant edges, i.e. edges implied by a longer path,
- cycle-safe ancestor walks and root-ward chain enumeration.

The graph is built once per validation run and is read-only afterwards,
so it can be shared by rules evaluated on several threads.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Deque, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from schemarules.models import ForeignKeyInfo, SchemaDefinition, TableInfo

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("schemarules.graph")


# ---------------------------------------------------------------------------
# Edge
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ExtensionEdge:
    """``child`` extends ``parent`` through ``foreign_key``."""

    child: str
    parent: str
    foreign_key: ForeignKeyInfo = field(compare=False, repr=False)

    @property
    def is_self_loop(self) -> bool:
        return self.child == self.parent


def is_extension_foreign_key(
    table: TableInfo, fk: ForeignKeyInfo, schema: SchemaDefinition
) -> bool:
    """
    True when ``fk`` maps the whole primary key of ``table`` onto the whole
    primary key of the referenced table, in order.
    """
    pk: List[str] = table.resolved_primary_keys
    if not pk or list(fk.columns) != pk:
        return False
    target: Optional[TableInfo] = schema.get_table(fk.referred_table)
    if target is None:
        return False
    return list(fk.referred_columns) == target.resolved_primary_keys


# ---------------------------------------------------------------------------
# Graph
# ---------------------------------------------------------------------------


class ExtensionGraph:
    """
    Immutable extension graph over the tables of one schema.

    Node order is the schema's table order, which makes every traversal
    below deterministic.
    """

    __slots__ = (
        "_names",
        "_index",
        "_parents",
        "_children",
        "_edges",
        "_components",
        "_component_of",
    )

    def __init__(self, names: Sequence[str], edges: Sequence[ExtensionEdge]) -> None:
        self._names: Tuple[str, ...] = tuple(names)
        self._index: Dict[str, int] = {n: i for i, n in enumerate(self._names)}
        self._parents: List[List[int]] = [[] for _ in self._names]
        self._children: List[List[int]] = [[] for _ in self._names]
        self._edges: Tuple[ExtensionEdge, ...] = tuple(edges)

        for edge in self._edges:
            child: int = self._index[edge.child]
            parent: int = self._index[edge.parent]
            self._parents[child].append(parent)
            self._children[parent].append(child)

        self._components: List[List[int]] = self._cyclic_components()
        self._component_of: Dict[int, int] = {
            node: cid
            for cid, members in enumerate(self._components)
            for node in members
        }

    # -- Construction -------------------------------------------------------

    @classmethod
    def from_schema(cls, schema: SchemaDefinition) -> "ExtensionGraph":
        """
        Derive the extension graph of ``schema``.

        Every qualifying foreign key yields one edge, so a table extending
        several parents (or the same parent twice) keeps all of them.

        Complexity: O(T + F).
        """
        edges: List[ExtensionEdge] = []
        for table in schema.tables:
            if not table.has_primary_key:
                continue
            for fk in table.foreign_keys:
                if is_extension_foreign_key(table, fk, schema):
                    edges.append(ExtensionEdge(table.name, fk.referred_table, fk))

        graph: ExtensionGraph = cls(schema.table_names, edges)
        logger.debug(
            "Extension graph built: %d tables, %d edges, %d cyclic component(s).",
            len(graph._names),
            len(edges),
            len(graph._components),
        )
        return graph

    # -- Basic queries ------------------------------------------------------

    @property
    def nodes(self) -> List[str]:
        return list(self._names)

    @property
    def edges(self) -> List[ExtensionEdge]:
        return list(self._edges)

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    @property
    def is_empty(self) -> bool:
        return not self._edges

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._names)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def edges_from(self, name: str) -> List[ExtensionEdge]:
        return [e for e in self._edges if e.child == name]

    def parents(self, name: str) -> List[str]:
        """Distinct tables ``name`` directly extends, in declaration order."""
        seen: Set[int] = set()
        result: List[str] = []
        for p in self._parents[self._index[name]]:
            if p not in seen:
                seen.add(p)
                result.append(self._names[p])
        return result

    def children(self, name: str) -> List[str]:
        """Distinct tables directly extending ``name``."""
        seen: Set[int] = set()
        result: List[str] = []
        for c in self._children[self._index[name]]:
            if c not in seen:
                seen.add(c)
                result.append(self._names[c])
        return result

    def is_extension(self, name: str) -> bool:
        """True when ``name`` has at least one outgoing extension edge."""
        return bool(self._parents[self._index[name]])

    def is_extended(self, name: str) -> bool:
        return bool(self._children[self._index[name]])

    def is_root(self, name: str) -> bool:
        return not self._parents[self._index[name]]

    @property
    def roots(self) -> List[str]:
        """Tables that are extended by something but extend nothing."""
        return [
            n for i, n in enumerate(self._names)
            if not self._parents[i] and self._children[i]
        ]

    # -- Cycles -------------------------------------------------------------

    def _cyclic_components(self) -> List[List[int]]:
        """
        Strongly connected components that contain a cycle, using an
        iterative Tarjan traversal.  A single node is cyclic only when it
        has a self-loop.

        Complexity: O(V + E).
        """
        n: int = len(self._names)
        index_of: List[int] = [-1] * n
        lowlink: List[int] = [0] * n
        on_stack: List[bool] = [False] * n
        stack: List[int] = []
        counter: int = 0
        components: List[List[int]] = []

        for start in range(n):
            if index_of[start] != -1:
                continue
            work: List[Tuple[int, int]] = [(start, 0)]
            while work:
                node, pos = work.pop()
                if pos == 0:
                    index_of[node] = lowlink[node] = counter
                    counter += 1
                    stack.append(node)
                    on_stack[node] = True
                neighbours: List[int] = self._parents[node]
                recurse: bool = False
                while pos < len(neighbours):
                    nxt: int = neighbours[pos]
                    pos += 1
                    if index_of[nxt] == -1:
                        work.append((node, pos))
                        work.append((nxt, 0))
                        recurse = True
                        break
                    if on_stack[nxt]:
                        lowlink[node] = min(lowlink[node], index_of[nxt])
                if recurse:
                    continue
                if lowlink[node] == index_of[node]:
                    members: List[int] = []
                    while True:
                        top: int = stack.pop()
                        on_stack[top] = False
                        members.append(top)
                        if top == node:
                            break
                    if len(members) > 1 or node in self._parents[node]:
                        components.append(sorted(members))
                if work:
                    caller: int = work[-1][0]
                    lowlink[caller] = min(lowlink[caller], lowlink[node])

        components.sort(key=lambda members: members[0])
        return components

    def is_cyclic(self, name: str) -> bool:
        """True when ``name`` lies on an extension cycle."""
        return self._index[name] in self._component_of

    @property
    def has_cycles(self) -> bool:
        return bool(self._components)

    def cycle_components(self) -> List[List[str]]:
        """Tables of every cyclic component, each in schema order."""
        return [[self._names[i] for i in members] for members in self._components]

    def cycle_component(self, name: str) -> List[str]:
        cid: Optional[int] = self._component_of.get(self._index[name])
        if cid is None:
            return []
        return [self._names[i] for i in self._components[cid]]

    def cycle_path(self, name: str) -> List[str]:
        """
        A closed path ``[name, ..., name]`` through the cycle containing
        ``name``; empty when ``name`` is not cyclic.
        """
        start: int = self._index[name]
        cid: Optional[int] = self._component_of.get(start)
        if cid is None:
            return []
        if start in self._parents[start]:
            return [name, name]
        members: Set[int] = set(self._components[cid])
        pred: Dict[int, int] = {}
        queue: Deque[int] = deque()
        for p in self._parents[start]:
            if p in members and p not in pred:
                pred[p] = start
                queue.append(p)
        while queue:
            node: int = queue.popleft()
            for p in self._parents[node]:
                if p == start:
                    hops: List[int] = [node]
                    while pred[hops[-1]] != start:
                        hops.append(pred[hops[-1]])
                    hops.reverse()
                    return [self._names[i] for i in [start, *hops, start]]
                if p in members and p not in pred:
                    pred[p] = node
                    queue.append(p)
        return []

    # -- Reachability -------------------------------------------------------

    def ancestors(self, name: str) -> List[str]:
        """
        Every table reachable from ``name`` through extension edges, in BFS
        order.  Cycle-safe: each table is visited at most once and ``name``
        itself is never reported.
        """
        start: int = self._index[name]
        visited: Set[int] = {start}
        order: List[str] = []
        queue: Deque[int] = deque(self._parents[start])
        while queue:
            node: int = queue.popleft()
            if node in visited:
                continue
            visited.add(node)
            order.append(self._names[node])
            queue.extend(self._parents[node])
        return order

    def alternate_path(self, source: str, target: str) -> Optional[List[str]]:
        """
        Shortest path ``source → ... → target`` of length ≥ 2, i.e. one that
        does not use the direct edge ``source → target``; ``None`` if there
        is no such path.
        """
        src: int = self._index[source]
        dst: int = self._index[target]
        pred: Dict[int, int] = {}
        visited: Set[int] = {src}
        queue: Deque[int] = deque()
        for p in self._parents[src]:
            if p != dst and p not in visited:
                visited.add(p)
                pred[p] = src
                queue.append(p)
        while queue:
            node: int = queue.popleft()
            for p in self._parents[node]:
                if p == dst:
                    path: List[int] = [dst, node]
                    while path[-1] != src:
                        path.append(pred[path[-1]])
                    path.reverse()
                    return [self._names[i] for i in path]
                if p not in visited:
                    visited.add(p)
                    pred[p] = node
                    queue.append(p)
        return None

    def redundant_edges(self, name: str) -> List[Tuple[str, List[str]]]:
        """
        Direct parents of ``name`` that are also reachable through a longer
        path, each with the shortest such path.

        The set of tables reachable from ``name`` in two or more hops is the
        union of the ancestors of its parents; a direct parent found in that
        set is a redundant edge.

        Complexity: O(P × (V + E)) where P = direct parents of ``name``.
        """
        direct: List[str] = self.parents(name)
        if len(direct) < 2:
            return []
        reachable_in_two: Set[str] = set()
        for parent in direct:
            reachable_in_two.update(self.ancestors(parent))

        redundant: List[Tuple[str, List[str]]] = []
        for parent in direct:
            if parent == name or parent not in reachable_in_two:
                continue
            path: Optional[List[str]] = self.alternate_path(name, parent)
            if path is not None:
                redundant.append((parent, path))
        return redundant

    def chains(self, name: str) -> List[List[str]]:
        """
        Every maximal path from ``name`` towards the roots, ``name`` first.

        A chain stops at a table without parents.  Tables already on the
        current path are never revisited, so cyclic input still terminates
        (the chain ends where it would loop).
        """
        start: int = self._index[name]
        result: List[List[str]] = []
        stack: List[List[int]] = [[start]]
        while stack:
            path: List[int] = stack.pop()
            on_path: Set[int] = set(path)
            nexts: List[int] = []
            for p in self._parents[path[-1]]:
                if p not in on_path and p not in nexts:
                    nexts.append(p)
            if not nexts:
                result.append([self._names[i] for i in path])
                continue
            for p in reversed(nexts):
                stack.append(path + [p])
        return result

    def __repr__(self) -> str:
        return (
            f"<ExtensionGraph {len(self._names)} tables, "
            f"{len(self._edges)} edges, {len(self._components)} cycle(s)>"
        )


def build_extension_graph(schema: SchemaDefinition) -> ExtensionGraph:
    """Functional alias for ``ExtensionGraph.from_schema``."""
    return ExtensionGraph.from_schema(schema)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ExtensionEdge",
    "ExtensionGraph",
    "build_extension_graph",
    "is_extension_foreign_key",
]
