"""
Dependency graph between explicit functions.

Nodes are entry indices, an edge ``producer -> consumer`` means the consumer
reads a block the producer writes. Evaluation must follow a topological
order of this graph, and a strongly connected component with more than one
node (or a node reading its own output) is a cycle that no order can
satisfy.
"""

from __future__ import annotations

import heapq
from dataclasses import dataclass, field
from beartype.typing import Dict, Iterator, List, Set, Tuple


@dataclass
class DependencyGraph:
    """Directed producer -> consumer graph over integer nodes."""

    nodes: List[int] = field(default_factory=list)
    adj: Dict[int, Set[int]] = field(default_factory=dict)

    def copy(self) -> DependencyGraph:
        return DependencyGraph(
            nodes=list(self.nodes), adj={k: set(v) for k, v in self.adj.items()}
        )

    def add_node(self, node: int) -> None:
        if node not in self.adj:
            self.nodes.append(node)
            self.adj[node] = set()

    def add_edge(self, producer: int, consumer: int) -> None:
        self.add_node(producer)
        self.add_node(consumer)
        self.adj[producer].add(consumer)

    def predecessors(self, node: int) -> List[int]:
        return [n for n in self.nodes if node in self.adj[n]]

    def cycles(self) -> List[List[int]]:
        """strongly connected components that are cycles, nodes sorted"""
        result = []
        for scc in _tarjan_scc(self.nodes, self.adj):
            if len(scc) > 1 or scc[0] in self.adj[scc[0]]:
                result.append(sorted(scc))
        return sorted(result)

    def evaluation_order(self) -> List[int]:
        """Topological order, ties broken by smallest node first.

        Raises ValueError if the graph has a cycle.
        """
        in_degree = {n: 0 for n in self.nodes}
        for n in self.nodes:
            for m in self.adj[n]:
                in_degree[m] += 1
        ready = [n for n in self.nodes if in_degree[n] == 0]
        heapq.heapify(ready)
        order: List[int] = []
        while ready:
            n = heapq.heappop(ready)
            order.append(n)
            for m in self.adj[n]:
                in_degree[m] -= 1
                if in_degree[m] == 0:
                    heapq.heappush(ready, m)
        if len(order) != len(self.nodes):
            raise ValueError(f"graph has cycles: {self.cycles()}")
        return order


def _tarjan_scc(nodes: List[int], adj: Dict[int, Set[int]]) -> List[List[int]]:
    """Find strongly connected components using Tarjan's algorithm.

    Args:
        nodes: List of node identifiers
        adj: Adjacency sets (adj[node] = nodes this node points to)

    Returns:
        List of SCCs, each SCC is a list of nodes.
        SCCs are returned in reverse topological order.
    """
    counter = 0
    stack: List[int] = []
    lowlink: Dict[int, int] = {}
    index: Dict[int, int] = {}
    on_stack: Dict[int, bool] = {}
    sccs: List[List[int]] = []

    # explicit work stack of (node, remaining successors), depth is unbounded
    work: List[Tuple[int, Iterator[int]]] = []

    def visit(node: int) -> None:
        nonlocal counter
        index[node] = lowlink[node] = counter
        counter += 1
        stack.append(node)
        on_stack[node] = True
        work.append((node, iter(sorted(adj.get(node, ())))))

    for root in nodes:
        if root in index:
            continue
        visit(root)
        while work:
            node, successors = work[-1]
            descended = False
            for successor in successors:
                if successor not in index:
                    visit(successor)
                    descended = True
                    break
                elif on_stack.get(successor, False):
                    lowlink[node] = min(lowlink[node], index[successor])
            if descended:
                continue

            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])

            # root of an SCC, pop it
            if lowlink[node] == index[node]:
                scc: List[int] = []
                while True:
                    w = stack.pop()
                    on_stack[w] = False
                    scc.append(w)
                    if w == node:
                        break
                sccs.append(scc)

    return sccs
