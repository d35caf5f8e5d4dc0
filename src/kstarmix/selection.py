"""Candidate selectors for bachelor pions and K0S candidates.

Every selector is a pure predicate over one candidate and its cut
container. Selectors read candidates only through the accessors listed in
`SelectableTrack` / `SelectableV0`, so any row type exposing them works.
"""

from __future__ import annotations

from .histograms import HistogramRegistry
from .models import (
    Collision,
    PIDCuts,
    SelectableTrack,
    SelectableV0,
    TrackAcceptance,
    TrackSelectionCuts,
    V0Cuts,
    V0DaughterCuts,
)
from .physics import armenteros_ratio, mass_window, v0_ctau
from .pid import make_k0short


def passes_track_acceptance(track: SelectableTrack, cuts: TrackAcceptance) -> bool:
    """Kinematic and DCA acceptance applied to pion candidates before any other selection."""
    if cuts.pt_min is not None and not abs(track.pt) > cuts.pt_min:
        return False
    if cuts.eta_max is not None and not abs(track.eta) < cuts.eta_max:
        return False
    if cuts.dca_xy_max is not None and not abs(track.dca_xy) < cuts.dca_xy_max:
        return False
    if cuts.dca_z_max is not None and not abs(track.dca_z) < cuts.dca_z_max:
        return False
    return True


def select_track(track: SelectableTrack, cuts: TrackSelectionCuts) -> bool:
    """Primary-track quality.

    Each enabled policy is an OR of its sub-conditions: satisfying any one
    of them is enough for that policy to pass.
    """
    if cuts.custom_dca_policy and not (
        track.is_global_track
        or track.is_pv_contributor
        or track.its_n_cls > cuts.its_cluster_min
    ):
        return False
    if cuts.manual_dca_policy and not (
        track.is_global_track_wo_dca
        or track.is_pv_contributor
        or abs(track.dca_xy) < cuts.dca_xy_max
        or abs(track.dca_z) < cuts.dca_z_max
        or track.its_n_cls > cuts.its_cluster_min
    ):
        return False
    return True


def select_pid(track: SelectableTrack, cuts: PIDCuts) -> bool:
    """Pion PID: combined TPC+TOF circle when TOF is present, TPC band otherwise."""
    if track.has_tof:
        n2 = track.tof_n_sigma_pi * track.tof_n_sigma_pi + track.tpc_n_sigma_pi * track.tpc_n_sigma_pi
        return n2 < cuts.combined_n_sigma_max * cuts.combined_n_sigma_max
    return abs(track.tpc_n_sigma_pi) < cuts.tpc_n_sigma_max


def is_selected_v0_daughter(
    track: SelectableTrack,
    charge: int,
    n_sigma: float,
    cuts: V0DaughterCuts,
) -> bool:
    """Quality, charge and PID requirements for one V0 daughter.

    `dca_xy_min` is a lower bound: daughters too close to the primary vertex
    are rejected.
    """
    if not track.has_tpc:
        return False
    if track.tpc_n_cls_crossed_rows < cuts.tpc_crossed_rows_min:
        return False
    if track.tpc_crossed_rows_over_findable_cls < cuts.crossed_rows_over_findable_min:
        return False
    if charge < 0 and track.sign > 0:
        return False
    if charge > 0 and track.sign < 0:
        return False
    if abs(track.eta) > cuts.eta_max:
        return False
    if track.tpc_n_cls_found < cuts.tpc_n_cls_found_min:
        return False
    if abs(track.dca_xy) < cuts.dca_xy_min:
        return False
    if abs(n_sigma) > cuts.pid_n_sigma_max:
        return False
    return True


def select_v0(
    collision: Collision,
    v0: SelectableV0,
    multiplicity: float,
    cuts: V0Cuts,
    qa: HistogramRegistry | None = None,
) -> bool:
    """Topology, lifetime, mass-window and Armenteros selection of a K0S candidate.

    When `qa` is given, accepted candidates fill the V0 monitoring histograms.
    """
    if abs(v0.dca_v0_to_pv) > cuts.dca_to_pv_max:
        return False
    if abs(v0.rapidity) > cuts.rapidity_max:
        return False
    if v0.pt < cuts.pt_min:
        return False
    if v0.dca_v0_daughters > cuts.dca_daughters_max:
        return False
    if v0.v0_cos_pa < cuts.cos_pa_min:
        return False
    if v0.v0_radius < cuts.radius_min or v0.v0_radius > cuts.radius_max:
        return False

    nominal = make_k0short().mass
    ctau = v0_ctau(v0, collision, nominal)
    if abs(ctau) > cuts.lifetime_max:
        return False
    center = nominal if cuts.mass_window_center is None else cuts.mass_window_center
    low, high = mass_window(center, cuts.mass_width, cuts.mass_n_sigma)
    if v0.mass < low or v0.mass > high:
        return False

    arm = armenteros_ratio(v0.qt_arm, v0.alpha)
    if arm is None or arm < cuts.armenteros_min:
        return False

    if qa is not None:
        qa.fill("hLT", ctau)
        qa.fill("hMassvsptvsmult", v0.mass, v0.pt, multiplicity)
        qa.fill("hDCAV0Daughters", v0.dca_v0_daughters)
        qa.fill("hV0CosPA", v0.v0_cos_pa)
    return True
