"""Collision-level classification: quality check and multiplicity estimate."""

from __future__ import annotations

from enum import Enum

from .models import Collision, EventCuts


class MultiplicityEstimator(str, Enum):
    """Exactly one estimator is evaluated per collision."""

    FT0_MULT = "ft0-mult"
    FT0C_CENT = "ft0c"
    FT0M_CENT = "ft0m"


def estimator_from_flags(mult_ft0: bool, cent_ft0c: bool) -> MultiplicityEstimator:
    """Map the two boolean switches onto one estimator.

    The forward multiplicity sum takes precedence; otherwise FT0C centrality
    is used when requested, FT0M centrality when not.
    """
    if mult_ft0:
        return MultiplicityEstimator.FT0_MULT
    if cent_ft0c:
        return MultiplicityEstimator.FT0C_CENT
    return MultiplicityEstimator.FT0M_CENT


def collision_multiplicity(collision: Collision, estimator: MultiplicityEstimator) -> float:
    """Return the multiplicity/centrality value of `collision` for the chosen estimator."""
    if estimator is MultiplicityEstimator.FT0_MULT:
        return collision.mult_ft0a + collision.mult_ft0c
    if estimator is MultiplicityEstimator.FT0C_CENT:
        return collision.cent_ft0c
    return collision.cent_ft0m


def is_good_collision(collision: Collision, cuts: EventCuts | None = None) -> bool:
    """Trigger/quality flag plus the optional z-vertex window."""
    cuts = cuts or EventCuts()
    if cuts.require_sel8 and not collision.sel8:
        return False
    if cuts.z_vertex_max is not None and abs(collision.pos_z) >= cuts.z_vertex_max:
        return False
    return True
