from connected_capacity.derivers.episode_type import EpisodeTypeDeriver
from connected_capacity.derivers.rehab_potential import (
    POTENTIAL_THRESHOLD,
    RehabPotentialDeriver,
    RehabPotentialResult,
)

__all__ = [
    "EpisodeTypeDeriver",
    "POTENTIAL_THRESHOLD",
    "RehabPotentialDeriver",
    "RehabPotentialResult",
]
