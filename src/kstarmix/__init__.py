"""Public package exports for the charged K* same-event/mixed-event engine."""

from .config import AnalysisConfig
from .engine import MIXED_EVENT, SAME_EVENT, KstarAnalysis, RunSummary, run_analysis
from .events import MultiplicityEstimator, collision_multiplicity, is_good_collision
from .exceptions import (
    ConfigurationError,
    DaughterResolutionError,
    InputContractError,
    KstarMixError,
)
from .histograms import Histogram, HistogramRegistry
from .mixing import BinningPolicy, MixingPairGenerator
from .models import (
    Axis,
    ChargedCandidate,
    Collision,
    CompositeCandidate,
    EventCuts,
    EventInput,
    LorentzVector,
    MixingConfig,
    ParticleHypothesis,
    PIDCuts,
    QAFlags,
    TrackAcceptance,
    TrackSelectionCuts,
    V0Cuts,
    V0DaughterCuts,
)
from .pid import make_k0short, make_kstar_plus, make_pion
from .selection import (
    is_selected_v0_daughter,
    passes_track_acceptance,
    select_pid,
    select_track,
    select_v0,
)

__all__ = [
    "KstarAnalysis",
    "RunSummary",
    "run_analysis",
    "SAME_EVENT",
    "MIXED_EVENT",
    "AnalysisConfig",
    "Collision",
    "ChargedCandidate",
    "CompositeCandidate",
    "EventInput",
    "LorentzVector",
    "ParticleHypothesis",
    "Axis",
    "EventCuts",
    "TrackAcceptance",
    "TrackSelectionCuts",
    "PIDCuts",
    "V0DaughterCuts",
    "V0Cuts",
    "QAFlags",
    "MixingConfig",
    "MultiplicityEstimator",
    "collision_multiplicity",
    "is_good_collision",
    "BinningPolicy",
    "MixingPairGenerator",
    "Histogram",
    "HistogramRegistry",
    "select_track",
    "select_pid",
    "is_selected_v0_daughter",
    "select_v0",
    "passes_track_acceptance",
    "make_pion",
    "make_k0short",
    "make_kstar_plus",
    "KstarMixError",
    "ConfigurationError",
    "InputContractError",
    "DaughterResolutionError",
]
