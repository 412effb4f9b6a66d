"""
Action generators proposing candidate mutations of a snapshot.

This module provides:
- RandomRegionMoveGenerator: Move a random region off an overloaded server
- RandomRegionSwapGenerator: Swap random regions between two servers
- LoadGreedyGenerator: Move a region from the fullest to the emptiest server
- LocalityGreedyGenerator: Move a region to the server holding most of its data
- GENERATOR_TYPES: Config weight name -> generator class
- GeneratorPicker: Weighted random choice between the enabled generators

Generators only read the snapshot. All randomness comes from the
random.Random passed to generate(), so a seeded run is reproducible.
A generator returns None when it has nothing to propose; the optimizer
counts that as a step and moves on.
"""

import logging
import random
from collections.abc import Sequence

from balancer_core.cluster import Action, ClusterSnapshot, MoveRegionAction, SwapRegionsAction
from balancer_core.cluster.locality import Locality, index_locality
from balancer_core.config import BalancerConfig
from balancer_protocols import ActionGeneratorProtocol

logger = logging.getLogger(__name__)


def _other_server(rng: random.Random, server_count: int, server: int) -> int:
    """Uniform random server index different from server."""
    other = rng.randrange(server_count - 1)
    if other >= server:
        other += 1
    return other


def _pick_region(rng: random.Random, snapshot: ClusterSnapshot, server: int) -> int | None:
    regions = snapshot.regions_on(server)
    if not regions:
        return None
    return regions[rng.randrange(len(regions))]


class RandomRegionMoveGenerator:
    """
    Move a random region from a server above average to any other server.

    Falls back to a uniformly random source when no server is above average.
    """

    name = "random_move"

    def generate(self, snapshot: ClusterSnapshot, rng: random.Random) -> Action | None:
        server_count = snapshot.server_count
        if server_count < 2:
            return None
        average = snapshot.average
        overloaded = [s for s, count in enumerate(snapshot.region_counts) if count > average]
        source = rng.choice(overloaded) if overloaded else rng.randrange(server_count)
        region = _pick_region(rng, snapshot, source)
        if region is None:
            return None
        return MoveRegionAction(region, source, _other_server(rng, server_count, source))


class RandomRegionSwapGenerator:
    """Swap one random region of one server with one of another server."""

    name = "random_swap"

    def generate(self, snapshot: ClusterSnapshot, rng: random.Random) -> Action | None:
        server_count = snapshot.server_count
        if server_count < 2:
            return None
        source = rng.randrange(server_count)
        destination = _other_server(rng, server_count, source)
        region = _pick_region(rng, snapshot, source)
        other_region = _pick_region(rng, snapshot, destination)
        if region is None or other_region is None:
            return None
        return SwapRegionsAction(region, source, other_region, destination)


class LoadGreedyGenerator:
    """
    Move a random region from the most loaded server to the least loaded one.

    Ties are broken at random. Proposes nothing once the spread between the
    two is at most one region.
    """

    name = "load"

    def generate(self, snapshot: ClusterSnapshot, rng: random.Random) -> Action | None:
        counts = snapshot.region_counts
        if len(counts) < 2:
            return None
        highest = max(counts)
        lowest = min(counts)
        if highest - lowest <= 1:
            return None
        source = rng.choice([s for s, count in enumerate(counts) if count == highest])
        destination = rng.choice([s for s, count in enumerate(counts) if count == lowest])
        region = _pick_region(rng, snapshot, source)
        if region is None:
            return None
        return MoveRegionAction(region, source, destination)


class LocalityGreedyGenerator:
    """
    Move a random region to the server with the highest locality for it.

    The best server of every region is computed on first use with a given
    snapshot and reused for the rest of the run.
    """

    name = "locality"

    def __init__(self, locality: Locality) -> None:
        self._locality = locality
        self._indexed_for: ClusterSnapshot | None = None
        self._best_server: list[int | None] = []

    def _index(self, snapshot: ClusterSnapshot) -> None:
        self._best_server = []
        for fractions in index_locality(snapshot, self._locality):
            if fractions:
                best = max(fractions, key=lambda s: (fractions[s], -s))
                self._best_server.append(best if fractions[best] > 0 else None)
            else:
                self._best_server.append(None)
        self._indexed_for = snapshot

    def generate(self, snapshot: ClusterSnapshot, rng: random.Random) -> Action | None:
        if snapshot.server_count < 2 or snapshot.total_regions == 0:
            return None
        if self._indexed_for is not snapshot:
            self._index(snapshot)
        region = rng.randrange(snapshot.total_regions)
        best = self._best_server[region]
        current = snapshot.server_of(region)
        if best is None or best == current:
            return None
        return MoveRegionAction(region, current, best)


GENERATOR_TYPES: dict[str, type[ActionGeneratorProtocol]] = {
    RandomRegionMoveGenerator.name: RandomRegionMoveGenerator,
    RandomRegionSwapGenerator.name: RandomRegionSwapGenerator,
    LoadGreedyGenerator.name: LoadGreedyGenerator,
    LocalityGreedyGenerator.name: LocalityGreedyGenerator,
}


class GeneratorPicker:
    """
    Weighted random choice between generators.

    Attributes:
        generators: Enabled generators.
        weights: Relative frequency of each generator, same order.
    """

    def __init__(self, generators: Sequence[tuple[ActionGeneratorProtocol, float]]) -> None:
        enabled = [(g, w) for g, w in generators if w > 0]
        if not enabled:
            raise ValueError("GeneratorPicker needs at least one generator with a positive weight")
        self.generators = [g for g, _ in enabled]
        self.weights = [w for _, w in enabled]

    @classmethod
    def from_config(cls, config: BalancerConfig, locality: Locality | None = None) -> "GeneratorPicker":
        """Build the generators enabled by the configured weights."""
        weights = config.generators
        generators: list[tuple[ActionGeneratorProtocol, float]] = [
            (RandomRegionMoveGenerator(), weights.random_move),
            (RandomRegionSwapGenerator(), weights.random_swap),
            (LoadGreedyGenerator(), weights.load),
        ]
        if locality:
            generators.append((LocalityGreedyGenerator(locality), weights.locality))
        elif weights.locality > 0:
            logger.debug("Skipping locality generator: no locality data")
        return cls(generators)

    @property
    def names(self) -> list[str]:
        return [g.name for g in self.generators]

    def pick(self, rng: random.Random) -> ActionGeneratorProtocol:
        if len(self.generators) == 1:
            return self.generators[0]
        return rng.choices(self.generators, weights=self.weights)[0]

    def generate(self, snapshot: ClusterSnapshot, rng: random.Random) -> Action | None:
        """Pick a generator and let it propose an action."""
        return self.pick(rng).generate(snapshot, rng)
