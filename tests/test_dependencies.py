#tests/test_dependencies.py
from types import SimpleNamespace

from autoplanner.components.dependencies import DependencyGraph
from autoplanner.components.errors import CycleDetected


def node(task_id, *deps):
    return SimpleNamespace(id=task_id, dependency_ids=list(deps))


def test_chain_resolves_dependencies_first():
    graph = DependencyGraph([node(1), node(2, 1), node(3, 2)])
    resolution = graph.resolve([3])
    assert resolution.order == [1, 2, 3]
    assert resolution.cycles == []


def test_shared_dependency_is_emitted_once():
    graph = DependencyGraph([node(1), node(2, 1), node(3, 1)])
    resolution = graph.resolve([2, 3])
    assert resolution.order == [1, 2, 3]


def test_dependency_order_follows_listing():
    graph = DependencyGraph([node(1), node(2), node(3, 2, 1)])
    assert graph.resolve([3]).order == [2, 1, 3]


def test_unknown_dependencies_are_ignored():
    # 99 is completed or deleted, so it is not part of this run
    graph = DependencyGraph([node(1, 99)])
    assert graph.dependencies_of(1) == []
    assert graph.resolve([1]).order == [1]


def test_two_task_cycle_is_reported_not_followed():
    graph = DependencyGraph([node(1, 2), node(2, 1)])
    resolution = graph.resolve([1, 2])
    assert resolution.order == []
    assert len(resolution.cycles) == 1
    cycle = resolution.cycles[0]
    assert isinstance(cycle, CycleDetected)
    assert set(cycle.task_ids) == {1, 2}
    assert resolution.cyclic_ids == {1, 2}


def test_self_dependency_is_a_cycle():
    graph = DependencyGraph([node(1, 1)])
    resolution = graph.resolve([1])
    assert resolution.order == []
    assert resolution.cyclic_ids == {1}


def test_dependent_of_a_cycle_is_still_ordered():
    graph = DependencyGraph([node(1, 2), node(2, 1), node(3, 1), node(4)])
    resolution = graph.resolve([3, 1, 2])
    assert resolution.order == [3]
    assert resolution.cyclic_ids == {1, 2}


def test_cycle_message_shows_the_loop():
    cycle = CycleDetected([4, 5, 6])
    assert cycle.message == "Dependency cycle between tasks 4 -> 5 -> 6 -> 4"
    assert cycle.details == {"task_ids": [4, 5, 6]}


def test_long_chain_does_not_hit_recursion_limit():
    count = 5000
    tasks = [node(1)] + [node(i, i - 1) for i in range(2, count + 1)]
    resolution = DependencyGraph(tasks).resolve([count])
    assert resolution.order == list(range(1, count + 1))
