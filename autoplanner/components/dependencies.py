#autoplanner/components/dependencies.py
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Sequence, Set

from autoplanner.components.errors import CycleDetected
from autoplanner.components.observability import get_logger

logger = get_logger(__name__)

_VISITING = 1
_DONE = 2


@dataclass
class Resolution:
    """Processing order (dependencies first) plus every cycle met on the way."""
    order: List[int] = field(default_factory=list)
    cycles: List[CycleDetected] = field(default_factory=list)

    @property
    def cyclic_ids(self) -> Set[int]:
        return {task_id for cycle in self.cycles for task_id in cycle.task_ids}


class DependencyGraph:
    """
    Dependency edges between the pending tasks of one run.

    Dependencies on tasks outside the snapshot (completed or deleted) are
    already satisfied and are dropped when the graph is built.
    """

    def __init__(self, tasks: Iterable):
        self.tasks = {t.id: t for t in tasks}
        self.edges: Dict[int, List[int]] = {}
        for task_id, task in self.tasks.items():
            deps: List[int] = []
            for dep_id in task.dependency_ids or []:
                if dep_id in self.tasks and dep_id not in deps:
                    deps.append(dep_id)
            self.edges[task_id] = deps

    def dependencies_of(self, task_id: int) -> List[int]:
        return self.edges.get(task_id, [])

    def resolve(self, roots: Sequence[int]) -> Resolution:
        """
        Depth-first walk from each root, emitting a task only after all of its
        dependencies. Walks with an explicit stack, so deep chains cannot hit
        the recursion limit. Tasks on a cycle are reported and left out of the order.
        """
        resolution = Resolution()
        state: Dict[int, int] = {}
        on_cycle: Set[int] = set()

        for root in roots:
            if root not in self.tasks or root in state:
                continue
            state[root] = _VISITING
            path = [root]
            stack = [(root, iter(self.edges[root]))]
            while stack:
                node, children = stack[-1]
                descended = False
                for child in children:
                    seen = state.get(child)
                    if seen is None:
                        state[child] = _VISITING
                        path.append(child)
                        stack.append((child, iter(self.edges[child])))
                        descended = True
                        break
                    if seen == _VISITING:
                        members = path[path.index(child):]
                        cycle = CycleDetected(members)
                        resolution.cycles.append(cycle)
                        on_cycle.update(members)
                        logger.warning("Dependency cycle detected", task_ids=members)
                if descended:
                    continue
                stack.pop()
                path.pop()
                state[node] = _DONE
                if node not in on_cycle:
                    resolution.order.append(node)

        return resolution
