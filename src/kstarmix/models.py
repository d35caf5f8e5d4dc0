"""Core data models used by the charged K* pairing engine.

This module defines:
- immutable event objects (`Collision`, `ChargedCandidate`, `CompositeCandidate`)
- event containers (`EventInput`)
- kinematic helpers (`LorentzVector`, `ParticleHypothesis`)
- the selectable-candidate capabilities the selectors are written against
- configurable cut containers (`TrackAcceptance`, `TrackSelectionCuts`,
  `PIDCuts`, `V0DaughterCuts`, `V0Cuts`, `EventCuts`, `QAFlags`,
  `MixingConfig`) and the binning `Axis`.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Literal, Mapping, Protocol


@dataclass(frozen=True)
class Collision:
    """One recorded collision with its vertex, quality flag and multiplicity estimators."""

    collision_id: int
    pos_x: float
    pos_y: float
    pos_z: float
    sel8: bool
    mult_ft0a: float = 0.0
    mult_ft0c: float = 0.0
    cent_ft0c: float = 0.0
    cent_ft0m: float = 0.0
    num_contrib: int = 0


@dataclass(frozen=True)
class ChargedCandidate:
    """Reconstructed charged track with quality flags and pion PID response.

    `track_id` is the global track index; V0 candidates reference their
    daughters through it.
    """

    track_id: int
    collision_id: int
    pt: float
    eta: float
    phi: float
    sign: int
    is_global_track: bool = False
    is_global_track_wo_dca: bool = False
    is_pv_contributor: bool = False
    its_n_cls: int = 0
    has_tpc: bool = True
    has_tof: bool = False
    tpc_n_cls_found: int = 0
    tpc_n_cls_crossed_rows: int = 0
    tpc_crossed_rows_over_findable_cls: float = 0.0
    dca_xy: float = 0.0
    dca_z: float = 0.0
    tpc_n_sigma_pi: float = 0.0
    tof_n_sigma_pi: float = 0.0


@dataclass(frozen=True)
class CompositeCandidate:
    """Reconstructed V0 candidate under the K0S hypothesis.

    `(x, y, z)` is the fitted decay vertex and `(px, py, pz)` the summed
    daughter momentum. `mass` and `rapidity` are evaluated with the K0S
    mass hypothesis.
    """

    v0_id: int
    collision_id: int
    pt: float
    eta: float
    phi: float
    mass: float
    rapidity: float
    pos_track_id: int
    neg_track_id: int
    px: float = 0.0
    py: float = 0.0
    pz: float = 0.0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    dca_v0_to_pv: float = 0.0
    dca_v0_daughters: float = 0.0
    v0_cos_pa: float = 1.0
    v0_radius: float = 0.0
    qt_arm: float = 0.0
    alpha: float = 0.0

    def __post_init__(self) -> None:
        if self.pos_track_id == self.neg_track_id:
            raise ValueError(
                f"V0 {self.v0_id} references track {self.pos_track_id} as both daughters."
            )

    def dist_over_tot_mom(self, pv_x: float, pv_y: float, pv_z: float) -> float:
        """Decay length from the given primary vertex divided by total momentum."""
        dx = self.x - pv_x
        dy = self.y - pv_y
        dz = self.z - pv_z
        p = (self.px * self.px + self.py * self.py + self.pz * self.pz) ** 0.5
        return (dx * dx + dy * dy + dz * dz) ** 0.5 / (p + 1e-13)


@dataclass(frozen=True)
class EventInput:
    """One collision payload with its own track and V0 lists."""

    collision: Collision
    tracks: tuple[ChargedCandidate, ...]
    v0s: tuple[CompositeCandidate, ...]

    def track_index(self) -> dict[int, ChargedCandidate]:
        """Map global track id to candidate for daughter resolution."""
        return {t.track_id: t for t in self.tracks}


class SelectableTrack(Protocol):
    """Accessors read by the track, PID and V0-daughter selectors."""

    pt: float
    eta: float
    sign: int
    is_global_track: bool
    is_global_track_wo_dca: bool
    is_pv_contributor: bool
    its_n_cls: int
    has_tpc: bool
    has_tof: bool
    tpc_n_cls_found: int
    tpc_n_cls_crossed_rows: int
    tpc_crossed_rows_over_findable_cls: float
    dca_xy: float
    dca_z: float
    tpc_n_sigma_pi: float
    tof_n_sigma_pi: float


class SelectableV0(Protocol):
    """Accessors read by the V0 topology selector."""

    pt: float
    mass: float
    rapidity: float
    dca_v0_to_pv: float
    dca_v0_daughters: float
    v0_cos_pa: float
    v0_radius: float
    qt_arm: float
    alpha: float

    def dist_over_tot_mom(self, pv_x: float, pv_y: float, pv_z: float) -> float:
        ...


# Identity -> candidate lookup injected into the pairing engine.
TrackResolver = Mapping[int, ChargedCandidate]


@dataclass(frozen=True)
class ParticleHypothesis:
    """Named particle hypothesis used to derive mass-dependent observables."""

    name: str
    mass: float
    pdg_id: int | None = None
    width: float | None = None


@dataclass(frozen=True)
class LorentzVector:
    """Simple 4-vector with convenience properties and addition."""

    px: float
    py: float
    pz: float
    e: float

    @classmethod
    def from_pt_eta_phi_m(cls, pt: float, eta: float, phi: float, mass: float) -> "LorentzVector":
        """Build a 4-vector from collider coordinates and a mass hypothesis."""
        px = pt * math.cos(phi)
        py = pt * math.sin(phi)
        pz = pt * math.sinh(eta)
        energy = (px * px + py * py + pz * pz + mass * mass) ** 0.5
        return cls(px=px, py=py, pz=pz, e=energy)

    def __add__(self, other: "LorentzVector") -> "LorentzVector":
        """Component-wise 4-vector addition."""
        return LorentzVector(
            self.px + other.px,
            self.py + other.py,
            self.pz + other.pz,
            self.e + other.e,
        )

    @property
    def p2(self) -> float:
        """Squared 3-momentum magnitude."""
        return self.px * self.px + self.py * self.py + self.pz * self.pz

    @property
    def pt(self) -> float:
        """Transverse momentum."""
        return (self.px * self.px + self.py * self.py) ** 0.5

    @property
    def mass2(self) -> float:
        """Invariant mass squared."""
        return self.e * self.e - self.p2

    @property
    def mass(self) -> float:
        """Invariant mass with signed handling for small negative mass2 values."""
        m2 = self.mass2
        return m2**0.5 if m2 >= 0.0 else -((-m2) ** 0.5)

    @property
    def rapidity(self) -> float:
        """Longitudinal rapidity `0.5 * ln((E + pz) / (E - pz))`."""
        num = self.e + self.pz
        den = self.e - self.pz
        if den <= 0.0:
            return math.inf
        if num <= 0.0:
            return -math.inf
        return 0.5 * math.log(num / den)


@dataclass(frozen=True)
class Axis:
    """Uniform binning axis over `[low, high)`."""

    n_bins: int
    low: float
    high: float
    name: str = ""

    def __post_init__(self) -> None:
        if self.n_bins <= 0:
            raise ValueError(f"Axis '{self.name}' needs a positive bin count, got {self.n_bins}.")
        if not self.high > self.low:
            raise ValueError(f"Axis '{self.name}' upper edge must exceed lower edge.")

    def index(self, value: float) -> int | None:
        """Return the bin index of `value`, or None outside the axis range."""
        if not self.low <= value < self.high:
            return None
        idx = int((value - self.low) / (self.high - self.low) * self.n_bins)
        # Guard rounding at the upper edge.
        return min(idx, self.n_bins - 1)

    def centers(self) -> list[float]:
        """Return bin-centre coordinates."""
        width = (self.high - self.low) / self.n_bins
        return [self.low + (i + 0.5) * width for i in range(self.n_bins)]


@dataclass(frozen=True)
class EventCuts:
    """Collision-level quality requirements."""

    require_sel8: bool = True
    z_vertex_max: float | None = 10.0


@dataclass(frozen=True)
class TrackAcceptance:
    """Kinematic/DCA acceptance applied to every pion candidate before selection."""

    pt_min: float | None = 0.2
    eta_max: float | None = 0.8
    dca_xy_max: float | None = 2.0
    dca_z_max: float | None = 2.0


@dataclass(frozen=True)
class TrackSelectionCuts:
    """Primary-track quality policies.

    `custom_dca_policy`: global OR PV contributor OR ITS clusters above minimum.
    `manual_dca_policy`: global-without-DCA OR PV contributor OR small DCAxy
    OR small DCAz OR ITS clusters above minimum.
    """

    custom_dca_policy: bool = False
    manual_dca_policy: bool = True
    its_cluster_min: int = 0
    dca_xy_max: float = 2.0
    dca_z_max: float = 2.0


@dataclass(frozen=True)
class PIDCuts:
    """Pion identification thresholds in units of detector sigma."""

    tpc_n_sigma_max: float = 3.0
    combined_n_sigma_max: float = 3.0


@dataclass(frozen=True)
class V0DaughterCuts:
    """Quality requirements for the two daughters of a V0 candidate."""

    eta_max: float = 0.8
    tpc_n_cls_found_min: float = 70.0
    dca_xy_min: float = 0.06
    pid_n_sigma_max: float = 4.0
    tpc_crossed_rows_min: float = 70.0
    crossed_rows_over_findable_min: float = 0.8


@dataclass(frozen=True)
class V0Cuts:
    """Topological and mass-window requirements for K0S candidates.

    The mass window is `[center - width * n_sigma, center + width * n_sigma]`
    where `center` defaults to the K0S hypothesis mass.
    """

    dca_to_pv_max: float = 0.3
    rapidity_max: float = 0.5
    pt_min: float = 0.0
    dca_daughters_max: float = 1.0
    cos_pa_min: float = 0.985
    radius_min: float = 0.5
    radius_max: float = 200.0
    lifetime_max: float = 15.0
    mass_width: float = 0.005
    mass_n_sigma: float = 4.0
    mass_window_center: float | None = None
    armenteros_min: float = 0.2


@dataclass(frozen=True)
class QAFlags:
    """Switches for optional monitoring histograms."""

    qa_before: bool = False
    qa_after: bool = False
    qa_v0: bool = False


@dataclass(frozen=True)
class MixingConfig:
    """Event-mixing controls.

    `n_mix` bounds the partners generated per anchor collision, not the
    total pairs per bin. `binning_variable` selects the second bin-key
    coordinate: the multiplicity estimator value or the PV-contributor count.
    """

    n_mix: int = 5
    seed: int | None = None
    vertex_axis: Axis = Axis(20, -10.0, 10.0, "vertex_z")
    multiplicity_axis: Axis = Axis(20, 0.0, 100.0, "multiplicity")
    binning_variable: Literal["multiplicity", "contributors"] = "multiplicity"
