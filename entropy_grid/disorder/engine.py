"""
Disorder Engine — converts raw entity state into the single instability score.

Weighted Shannon entropy over four observed-state buckets
{active, degraded, failed, unknown}. Each entity adds its type weight to the
bucket of its *observed* status: its true status when it carries a sensor,
UNKNOWN otherwise. The entropy in bits is rescaled by 5 and clamped, so the
score lives in [0, 10].
"""

import math
from typing import Dict, Iterable

from entropy_grid.models.world import Entity, EntityType, ObservedStatus

ENTITY_WEIGHTS: Dict[EntityType, int] = {
    EntityType.POWER_PLANT: 5,
    EntityType.SUBSTATION: 3,
    EntityType.RESIDENTIAL: 1,
}
SCORE_SCALE = 5.0
MAX_SCORE = 10.0


def observed_status(node: Entity) -> ObservedStatus:
    if not node.has_sensor:
        return ObservedStatus.UNKNOWN
    return ObservedStatus(node.status.value)


def bucket_weights(nodes: Iterable[Entity]) -> Dict[ObservedStatus, int]:
    """Sum of entity weights per observed-status bucket."""
    buckets = {status: 0 for status in ObservedStatus}
    for node in nodes:
        buckets[observed_status(node)] += ENTITY_WEIGHTS[node.type]
    return buckets


def score(nodes: Iterable[Entity]) -> float:
    """Instability score in [0, 10]; 0 for an empty graph."""
    buckets = bucket_weights(nodes)
    total = sum(buckets.values())
    if total == 0:
        return 0.0

    entropy = 0.0
    for weight in buckets.values():
        if weight > 0:
            p = weight / total
            entropy -= p * math.log2(p)

    return max(0.0, min(MAX_SCORE, entropy * SCORE_SCALE))
