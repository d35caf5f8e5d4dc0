"""Particle hypotheses used for mass assignment.

Bachelor tracks always carry the charged-pion mass and V0 candidates the
K0S mass; the K*(892)+ entry is the resonance being reconstructed.
"""

from __future__ import annotations

from .models import ParticleHypothesis

_PION = ParticleHypothesis(name="pi", mass=0.13957039, pdg_id=211)
_K0SHORT = ParticleHypothesis(name="K0S", mass=0.497611, pdg_id=310)
_KSTAR_PLUS = ParticleHypothesis(name="K*+", mass=0.89167, pdg_id=323, width=0.0514)


def make_pion() -> ParticleHypothesis:
    """Return the standard charged-pion mass hypothesis."""
    return _PION


def make_k0short() -> ParticleHypothesis:
    """Return the K0S mass hypothesis used for V0 candidates."""
    return _K0SHORT


def make_kstar_plus() -> ParticleHypothesis:
    """Return the charged K*(892) resonance with its nominal width."""
    return _KSTAR_PLUS
