"""Dependency ordering for registered suites.

Provides DependencyResolver, which orders requested suites so that every
suite comes after all of the suites it depends on, and reports cycles with
the full dependency path.
"""

from __future__ import annotations

from suite_orchestrator.discovery.registry import SuiteRegistry
from suite_orchestrator.errors import CycleDetectedError


class DependencyResolver:
    """Topologically orders suites using a three-colour depth-first search.

    Names that are not registered are treated as suites without
    dependencies: they are emitted in order but contribute no edges.
    Callers are expected to register every suite before resolving.
    """

    def __init__(self, registry: SuiteRegistry) -> None:
        self.registry = registry

    def get_dependencies(self, name: str) -> list[str]:
        """Direct dependencies of a suite, or [] if it is not registered."""
        suite = self.registry.get(name)
        if suite is None:
            return []
        return list(suite.dependencies)

    def resolve(self, requested: list[str]) -> list[str]:
        """Order the requested suites and their transitive dependencies.

        Args:
            requested: Suite names to run.

        Returns:
            Each requested (and transitively required) suite exactly once,
            every suite after all of its dependencies.

        Raises:
            CycleDetectedError: If a suite transitively depends on itself.
                No partial order is returned.
        """
        WHITE, GRAY, BLACK = 0, 1, 2
        color: dict[str, int] = {}
        path: list[str] = []
        order: list[str] = []

        for root in requested:
            if color.get(root, WHITE) != WHITE:
                continue
            color[root] = GRAY
            path.append(root)
            # Explicit stack so deep chains do not hit the recursion limit
            stack = [(root, iter(self.get_dependencies(root)))]
            while stack:
                name, deps = stack[-1]
                dep_name = next(deps, None)
                if dep_name is None:
                    stack.pop()
                    path.pop()
                    color[name] = BLACK
                    order.append(name)
                    continue

                state = color.get(dep_name, WHITE)
                if state == GRAY:
                    # Back edge -- the cycle runs from the first occurrence to here
                    cycle_start = path.index(dep_name)
                    raise CycleDetectedError(path[cycle_start:] + [dep_name])
                if state == WHITE:
                    color[dep_name] = GRAY
                    path.append(dep_name)
                    stack.append((dep_name, iter(self.get_dependencies(dep_name))))

        return order

    def find_cycle(self) -> list[str] | None:
        """Check every registered suite for a cycle.

        Returns:
            The cycle path, or None if the registry is acyclic.
        """
        try:
            self.resolve(self.registry.names())
        except CycleDetectedError as e:
            return e.chain
        return None
