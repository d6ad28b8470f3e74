"""
Entity Graph Generator — procedural city grid for a new session.

Places anchors first (power plants at well-separated cells, then substations),
fills the rest of the target with residential blocks, then wires:
  substation -> nearest power plant
  residential -> nearest substation
  plus node_count // 2 random extra links (self-loops dropped, duplicates kept)

Placement is best-effort. A shortfall is not an error: callers observe it
through len(nodes).
"""

import logging
import math
import random
from typing import Iterable, List, NamedTuple, Optional, Tuple

from entropy_grid.models.world import Entity, EntityStatus, EntityType, Link

logger = logging.getLogger(__name__)

DEFAULT_GRID_SIZE = 20
POWER_PLANT_SITES: Tuple[Tuple[int, int], ...] = ((2, 2), (15, 15), (15, 2))
SUBSTATION_ATTEMPTS = 8
PLACEMENT_RETRIES = 10
MAX_FILL_ATTEMPTS = 1000


class GeneratedGraph(NamedTuple):
    nodes: List[Entity]
    links: List[Link]


class _Grid:
    """Occupancy grid plus the node list being built."""

    def __init__(self, size: int, node_count: int, rng: random.Random):
        self.size = size
        self.node_count = node_count
        self.rng = rng
        self.occupied = set()
        self.nodes: List[Entity] = []

    @property
    def full(self) -> bool:
        return len(self.nodes) >= self.node_count

    def _random_cell(self) -> Tuple[int, int]:
        return self.rng.randrange(self.size), self.rng.randrange(self.size)

    def try_place(
        self,
        entity_type: EntityType,
        preferred: Optional[Tuple[int, int]] = None,
    ) -> bool:
        """
        Place one entity at the preferred cell, or a random one, retrying
        random cells while the candidate is occupied.
        """
        if self.full:
            return False

        cell = preferred if preferred is not None else self._random_cell()
        for _ in range(PLACEMENT_RETRIES):
            if cell not in self.occupied:
                self.occupied.add(cell)
                node_id = len(self.nodes)
                self.nodes.append(Entity(
                    id=node_id,
                    name=f"Node {node_id}",
                    type=entity_type,
                    x=cell[0],
                    y=cell[1],
                    status=EntityStatus.ACTIVE,
                    has_sensor=False,
                ))
                return True
            cell = self._random_cell()
        return False


def _distance(a: Entity, b: Entity) -> float:
    return math.hypot(a.x - b.x, a.y - b.y)


def _nearest(node: Entity, candidates: List[Entity]) -> Entity:
    # min() keeps the first of equal keys, so ties go to the earliest node
    return min(candidates, key=lambda c: _distance(node, c))


def _wire_to_nearest(
    members: Iterable[Entity], hubs: List[Entity], links: List[Link]
) -> None:
    if not hubs:
        return
    for member in members:
        hub = _nearest(member, hubs)
        links.append(Link(source=hub.id, target=member.id))


def generate(
    node_count: int,
    seed: Optional[int] = None,
    rng: Optional[random.Random] = None,
    grid_size: int = DEFAULT_GRID_SIZE,
) -> GeneratedGraph:
    """
    Generate a city graph with at most node_count entities.

    Pass either a seed or an explicit random.Random for reproducible output.
    """
    if rng is None:
        rng = random.Random(seed)

    grid = _Grid(grid_size, max(0, node_count), rng)

    for x, y in POWER_PLANT_SITES:
        grid.try_place(
            EntityType.POWER_PLANT,
            preferred=(min(x, grid_size - 1), min(y, grid_size - 1)),
        )

    for _ in range(SUBSTATION_ATTEMPTS):
        grid.try_place(EntityType.SUBSTATION)

    attempts = 0
    while not grid.full and attempts < MAX_FILL_ATTEMPTS:
        attempts += 1
        if not grid.try_place(EntityType.RESIDENTIAL):
            break

    nodes = grid.nodes
    if len(nodes) < node_count:
        logger.debug(
            "Placement shortfall: %d of %d entities placed on a %dx%d grid",
            len(nodes), node_count, grid_size, grid_size,
        )

    plants = [n for n in nodes if n.type == EntityType.POWER_PLANT]
    substations = [n for n in nodes if n.type == EntityType.SUBSTATION]
    residential = [n for n in nodes if n.type == EntityType.RESIDENTIAL]

    links: List[Link] = []
    _wire_to_nearest(substations, plants, links)
    _wire_to_nearest(residential, substations, links)

    if nodes:
        for _ in range(node_count // 2):
            src = rng.randrange(len(nodes))
            tgt = rng.randrange(len(nodes))
            if src != tgt:
                links.append(Link(source=nodes[src].id, target=nodes[tgt].id))

    return GeneratedGraph(nodes=nodes, links=links)
