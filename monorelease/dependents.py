"""Dependent propagation: which packages must be released alongside others.

A package that depends on a released package is released too, since its
declared range for that dependency will be rewritten.
"""

from __future__ import annotations

from collections import deque
from collections.abc import Callable, Iterable, Mapping

from .graph import DependencyGraphNode


def collect_dependents(
    candidates: Iterable[DependencyGraphNode],
) -> set[DependencyGraphNode]:
    """Return the nodes that transitively depend on any of ``candidates``.

    Runs one breadth-first search per candidate over the dependents
    relation, each with its own visited set. A dependent is skipped (but
    still marked visited) when it is the starting candidate itself or any
    other candidate, so two directly-changed packages depending on each
    other are not reported as each other's dependents. Cycles terminate
    because every node is visited at most once per search.

    The returned set does not include the candidates themselves.
    """
    candidates = list(candidates)
    direct = set(candidates)
    collected: set[DependencyGraphNode] = set()

    for start in candidates:
        if not start.local_dependents:
            # no point diving into a non-existent tree
            continue

        queue = deque([start])
        seen: set[DependencyGraphNode] = set()

        while queue:
            node = queue.popleft()
            for dependent in node.local_dependents.values():
                if dependent in seen:
                    continue
                seen.add(dependent)

                if dependent is start or dependent in direct:
                    # a direct or transitive cycle, skip it
                    continue

                collected.add(dependent)
                queue.append(dependent)

    return collected


def collect_packages(
    packages: Mapping[str, DependencyGraphNode],
    *,
    is_candidate: Callable[[DependencyGraphNode], bool] = lambda node: True,
    on_include: Callable[[str], None] | None = None,
    exclude_dependents: bool = False,
) -> list[DependencyGraphNode]:
    """Select candidate nodes plus (unless excluded) their dependents.

    The result always follows the iteration order of ``packages``, never
    the order in which nodes were discovered.

    Args:
        packages: Nodes keyed by package name, in the canonical order.
        is_candidate: Predicate marking directly-changed nodes.
        on_include: Called with the name of each selected node.
        exclude_dependents: If True, do not propagate to dependents.
    """
    candidates = [node for node in packages.values() if is_candidate(node)]

    selected = set(candidates)
    if not exclude_dependents:
        selected |= collect_dependents(candidates)

    updates: list[DependencyGraphNode] = []
    for name, node in packages.items():
        if node in selected:
            if on_include is not None:
                on_include(name)
            updates.append(node)

    return updates
