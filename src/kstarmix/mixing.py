"""Collision binning and mixed-event pair generation.

Collisions are grouped by a `(vertex_z bin, multiplicity bin)` key; only
collisions sharing a key are ever paired. Within a bin each anchor
collision is paired with at most `n_mix` partners that follow it in the
(optionally shuffled) bin order, so:

- no collision is paired with itself,
- no unordered pair is produced twice in one pass,
- the bound applies per anchor collision, not per bin.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterator, Sequence

import numpy as np

from .events import MultiplicityEstimator, collision_multiplicity
from .models import Collision, EventInput, MixingConfig

logger = logging.getLogger(__name__)

BinKey = tuple[int, int]


@dataclass(frozen=True)
class BinningPolicy:
    """Two-dimensional collision classification used to select mixing partners."""

    config: MixingConfig
    estimator: MultiplicityEstimator = MultiplicityEstimator.FT0C_CENT

    def bin_value(self, collision: Collision) -> float:
        """Second bin-key coordinate: estimator value or PV-contributor count."""
        if self.config.binning_variable == "contributors":
            return float(collision.num_contrib)
        return collision_multiplicity(collision, self.estimator)

    def bin_key(self, collision: Collision) -> BinKey | None:
        """Return the bin key, or None when the collision falls outside either axis."""
        iz = self.config.vertex_axis.index(collision.pos_z)
        if iz is None:
            return None
        im = self.config.multiplicity_axis.index(self.bin_value(collision))
        if im is None:
            return None
        return iz, im


class MixingPairGenerator:
    """Yield same-bin collision pairs for event mixing.

    With `seed=None` partners follow input order; otherwise each bin is
    shuffled with a numpy generator seeded once per pass.
    """

    def __init__(self, binning: BinningPolicy, n_mix: int | None = None, seed: int | None = None):
        self.binning = binning
        self.n_mix = binning.config.n_mix if n_mix is None else n_mix
        self.seed = binning.config.seed if seed is None else seed
        if self.n_mix < 0:
            raise ValueError(f"Number of mixing partners must be non-negative, got {self.n_mix}.")

    def group(self, events: Sequence[EventInput]) -> dict[BinKey, list[EventInput]]:
        """Group events by bin key; collisions outside the binning are dropped."""
        bins: dict[BinKey, list[EventInput]] = {}
        n_outside = 0
        for event in events:
            key = self.binning.bin_key(event.collision)
            if key is None:
                n_outside += 1
                continue
            bins.setdefault(key, []).append(event)
        if n_outside:
            logger.debug("%d collisions outside mixing binning", n_outside)
        return bins

    def pairs(self, events: Sequence[EventInput]) -> Iterator[tuple[EventInput, EventInput]]:
        """Yield `(anchor, partner)` pairs; the anchor supplies pions, the partner V0s."""
        rng = np.random.default_rng(self.seed) if self.seed is not None else None
        bins = self.group(events)
        for key in sorted(bins):
            members = bins[key]
            if rng is not None:
                members = [members[i] for i in rng.permutation(len(members))]
            for i, anchor in enumerate(members):
                for partner in members[i + 1 : i + 1 + self.n_mix]:
                    yield anchor, partner
