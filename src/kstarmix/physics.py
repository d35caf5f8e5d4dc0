"""Physics/math helpers for building and filtering K* candidates."""

from __future__ import annotations

from .models import Collision, LorentzVector, SelectableV0


def candidate_to_lorentz(candidate, mass: float) -> LorentzVector:
    """Convert any candidate exposing `pt/eta/phi` plus a mass hypothesis into a 4-vector."""
    return LorentzVector.from_pt_eta_phi_m(candidate.pt, candidate.eta, candidate.phi, mass)


def pair_kinematics(p4: LorentzVector) -> tuple[float, float, float]:
    """Return `(pt, rapidity, mass)` of a summed pair."""
    return p4.pt, p4.rapidity, p4.mass


def v0_ctau(v0: SelectableV0, collision: Collision, mass: float) -> float:
    """Proper decay length `L / p * m` of a V0 relative to the collision vertex."""
    return v0.dist_over_tot_mom(collision.pos_x, collision.pos_y, collision.pos_z) * mass


def armenteros_ratio(qt_arm: float, alpha: float) -> float | None:
    """Return `qt / alpha`, or None when alpha vanishes."""
    if alpha == 0.0:
        return None
    return qt_arm / alpha


def mass_window(center: float, width: float, n_sigma: float) -> tuple[float, float]:
    """Symmetric mass window `center -/+ width * n_sigma`."""
    half = width * n_sigma
    return center - half, center + half
