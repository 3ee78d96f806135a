# Copyright (C) 2012 Anaconda, Inc
# SPDX-License-Identifier: BSD-3-Clause
"""Topological sorting and strongly connected components of small dependency graphs.

Graphs are dictionaries mapping a node to the set of nodes it depends on.
"""

from collections import deque
from logging import getLogger

from ..exceptions import CyclicalDependencyError

log = getLogger(__name__)


def _prepare(data):
    graph = {k: set(v) for k, v in data.items()}
    # ignore self dependencies
    for k, v in graph.items():
        v.discard(k)
    # add empty dependencies where needed
    extra_items_in_deps = set().union(*graph.values()) - set(graph)
    graph.update({item: set() for item in extra_items_in_deps})
    return graph


def _toposort_raise_on_cycles(graph, key):
    while True:
        ordered = sorted((item for item, deps in graph.items() if not deps), key=key)
        if not ordered:
            break

        for item in ordered:
            yield item
            graph.pop(item, None)

        done = set(ordered)
        for deps in graph.values():
            deps -= done

    if graph:
        raise CyclicalDependencyError(sorted(graph, key=key))


def toposort(data, key=None):
    """Order ``data`` so every node comes after the nodes it depends on.

    Nodes that become ready at the same time are emitted in ``key`` order, which makes the
    result deterministic for a given graph.

    Raises:
        CyclicalDependencyError: if the graph has a cycle. Self dependencies are ignored.
    """
    if not data:
        return []
    return list(_toposort_raise_on_cycles(_prepare(data), key))


def strongly_connected_components(data):
    """Tarjan's algorithm, iterative. Returns the components with more than one node.

    Self loops are ignored, matching :func:`toposort`.
    """
    graph = _prepare(data)
    index_of = {}
    lowlink = {}
    on_stack = set()
    stack = []
    components = []
    counter = 0

    for root in graph:
        if root in index_of:
            continue
        work = [(root, iter(graph[root]))]
        index_of[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)
        while work:
            node, children = work[-1]
            for child in children:
                if child not in index_of:
                    index_of[child] = lowlink[child] = counter
                    counter += 1
                    stack.append(child)
                    on_stack.add(child)
                    work.append((child, iter(graph[child])))
                    break
                elif child in on_stack:
                    lowlink[node] = min(lowlink[node], index_of[child])
            else:
                work.pop()
                if work:
                    parent = work[-1][0]
                    lowlink[parent] = min(lowlink[parent], lowlink[node])
                if lowlink[node] == index_of[node]:
                    component = set()
                    while True:
                        member = stack.pop()
                        on_stack.discard(member)
                        component.add(member)
                        if member == node:
                            break
                    if len(component) > 1:
                        components.append(frozenset(component))
    return components


def find_path(data, source, target):
    """The shortest path from ``source`` to ``target`` as a tuple of nodes, or None."""
    parents = {source: None}
    queue = deque((source,))
    while queue:
        node = queue.popleft()
        if node == target:
            path = []
            while node is not None:
                path.append(node)
                node = parents[node]
            return tuple(reversed(path))
        for child in sorted(data.get(node, ()), key=str):
            if child not in parents:
                parents[child] = node
                queue.append(child)
    return None


def reaches(data, source, target):
    """True when ``target`` can be reached from ``source`` following dependency edges."""
    return find_path(data, source, target) is not None
