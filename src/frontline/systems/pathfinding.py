"""Road graph search: hop distance for ranking, weighted safe paths for movement."""

from __future__ import annotations

import heapq
import itertools
from collections import deque
from dataclasses import dataclass

from frontline.domain.types import FactionId
from frontline.sim.state import WorldState

UNREACHABLE = 999

HOSTILE_NODE_PENALTY = 10
ENEMY_ARMY_PENALTY = 50


@dataclass(frozen=True)
class PathStep:
    """One edge of a path. road_id is None for the free city/rural link."""

    road_id: str | None
    from_id: str
    to_id: str

    @property
    def is_link(self) -> bool:
        return self.road_id is None


def hop_distance(world: WorldState, start_id: str, end_id: str) -> int:
    """Unweighted hops between two locations (BFS), UNREACHABLE if disconnected.

    A city/rural link counts as one hop.
    """
    if start_id == end_id:
        return 0

    queue: deque[tuple[str, int]] = deque([(start_id, 0)])
    visited: set[str] = {start_id}

    while queue:
        node, dist = queue.popleft()
        adjacent = world.neighbors(node)
        partner = world.linked_partner(node)
        if partner is not None:
            adjacent.append(partner)
        for nxt in adjacent:
            if nxt in visited:
                continue
            if nxt == end_id:
                return dist + 1
            visited.add(nxt)
            queue.append((nxt, dist + 1))

    return UNREACHABLE


def find_safe_path(
    world: WorldState, start_id: str, end_id: str, faction: FactionId
) -> list[PathStep] | None:
    """Cheapest path from start to end through friendly ground (Dijkstra).

    Intermediate nodes must belong to the faction; only the final destination may
    be hostile or neutral. Each road costs its travel turns, +10 when entering
    hostile ground that is not the destination, +50 when enemy armies hold the
    node. Paired city/rural links cost nothing. Returns [] when start == end and
    None when no legal path exists.
    """
    if start_id == end_id:
        return []
    if start_id not in world.locations or end_id not in world.locations:
        return None

    counter = itertools.count()
    frontier: list[tuple[int, int, str]] = [(0, next(counter), start_id)]
    cost_so_far: dict[str, int] = {start_id: 0}
    came_from: dict[str, PathStep] = {}
    done: set[str] = set()

    while frontier:
        cost, _, node = heapq.heappop(frontier)
        if node in done:
            continue
        if node == end_id:
            break
        done.add(node)

        for step, step_cost in _edges(world, node, end_id, faction):
            nxt = step.to_id
            if nxt in done:
                continue
            new_cost = cost + step_cost
            if new_cost < cost_so_far.get(nxt, new_cost + 1):
                cost_so_far[nxt] = new_cost
                came_from[nxt] = step
                heapq.heappush(frontier, (new_cost, next(counter), nxt))

    if end_id not in came_from:
        return None

    path: list[PathStep] = []
    node = end_id
    while node != start_id:
        step = came_from[node]
        path.append(step)
        node = step.from_id
    path.reverse()
    return path


def _edges(world: WorldState, node: str, end_id: str, faction: FactionId):
    partner = world.linked_partner(node)
    if partner is not None and _passable(world, partner, end_id, faction):
        yield PathStep(road_id=None, from_id=node, to_id=partner), 0

    for road in world.roads_at(node):
        nxt = road.other_end(node)
        if not _passable(world, nxt, end_id, faction):
            continue
        cost = max(1, road.travel_turns)
        loc = world.locations[nxt]
        if loc.is_hostile_to(faction) and nxt != end_id:
            cost += HOSTILE_NODE_PENALTY
        if world.hostile_armies_at(nxt, faction):
            cost += ENEMY_ARMY_PENALTY
        yield PathStep(road_id=road.id, from_id=node, to_id=nxt), cost


def _passable(world: WorldState, location_id: str, end_id: str, faction: FactionId) -> bool:
    loc = world.locations.get(location_id)
    if loc is None:
        return False
    return location_id == end_id or loc.faction == faction
