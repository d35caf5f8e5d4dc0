"""Same-event and mixed-event pairing engine for charged K* -> K0S pi."""

from __future__ import annotations

import logging
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass, field
from itertools import product
from typing import Sequence

from .config import AnalysisConfig
from .events import collision_multiplicity, is_good_collision
from .exceptions import DaughterResolutionError
from .histograms import HistogramRegistry
from .mixing import BinningPolicy, MixingPairGenerator
from .models import (
    Axis,
    ChargedCandidate,
    Collision,
    CompositeCandidate,
    EventInput,
    LorentzVector,
    TrackResolver,
)
from .physics import candidate_to_lorentz, pair_kinematics
from .pid import make_k0short, make_pion
from .selection import (
    is_selected_v0_daughter,
    passes_track_acceptance,
    select_pid,
    select_track,
    select_v0,
)

logger = logging.getLogger(__name__)

SAME_EVENT = "h3CKSInvMassUnlikeSign"
MIXED_EVENT = "h3CKSInvMassMixed"


@dataclass(frozen=True)
class SelectedPion:
    track_id: int
    collision_id: int
    p4: LorentzVector


@dataclass(frozen=True)
class SelectedV0:
    v0_id: int
    collision_id: int
    pos_track_id: int
    neg_track_id: int
    p4: LorentzVector


@dataclass
class RunSummary:
    """Counters describing one pass over a collection of collisions."""

    registry: HistogramRegistry
    collisions: int = 0
    collisions_rejected: int = 0
    same_event_fills: int = 0
    mixed_pairs: int = 0
    mixed_pairs_rejected: int = 0
    mixed_event_fills: int = 0

    def merge(self, other: "RunSummary") -> None:
        """Fold counters and histograms of a partial run into this one."""
        self.registry.merge(other.registry)
        self.collisions += other.collisions
        self.collisions_rejected += other.collisions_rejected
        self.same_event_fills += other.same_event_fills
        self.mixed_pairs += other.mixed_pairs
        self.mixed_pairs_rejected += other.mixed_pairs_rejected
        self.mixed_event_fills += other.mixed_event_fills


@dataclass
class KstarAnalysis:
    """Select pions and K0S candidates and accumulate their invariant-mass spectra.

    The engine never owns histograms: callers pass a `HistogramRegistry`
    prepared with `book_histograms` and the engine only fills it.
    """

    config: AnalysisConfig = field(default_factory=AnalysisConfig)

    def __post_init__(self) -> None:
        self.pion_mass = make_pion().mass
        self.k0s_mass = make_k0short().mass

    def book_histograms(self, registry: HistogramRegistry | None = None) -> HistogramRegistry:
        """Register output, event-counter and enabled QA histograms."""
        registry = registry if registry is not None else HistogramRegistry()
        cfg = self.config
        mass_axes = (cfg.multiplicity_axis, cfg.pt_axis, cfg.mass_axis)
        registry.add(SAME_EVENT, "Invariant mass of CKS meson Unlike Sign", mass_axes)
        registry.add(MIXED_EVENT, "Invariant mass of CKS meson Mixed", mass_axes)

        registry.add("hVertexZRec", "hVertexZRec", [cfg.vertex_z_axis])
        registry.add("hmult", "Centrality distribution", [Axis(200, 0.0, 200.0, "multiplicity")])

        nsigma = Axis(200, -10.0, 10.0, "n_sigma")
        if cfg.qa.qa_before:
            registry.add("hNsigmaPionTPC_before", "NsigmaPion TPC distribution before", [nsigma])
            registry.add("hNsigmaPionTOF_before", "NsigmaPion TOF distribution before", [nsigma])
        if cfg.qa.qa_after:
            registry.add("hEta_after", "Eta distribution", [Axis(200, -1.0, 1.0, "eta")])
            registry.add("hDcaxy_after", "Dcaxy distribution", [Axis(200, -10.0, 10.0, "dca_xy")])
            registry.add("hDcaz_after", "Dcaz distribution", [Axis(200, -10.0, 10.0, "dca_z")])
            registry.add("hNsigmaPionTPC_after", "NsigmaPion TPC distribution", [nsigma])
            registry.add("hNsigmaPionTOF_after", "NsigmaPion TOF distribution", [nsigma])
        if cfg.qa.qa_v0:
            registry.add(
                "hMassvsptvsmult",
                "hMassvsptvsmult",
                [Axis(200, 0.45, 0.55, "mass"), Axis(200, 0.0, 20.0, "pt"), Axis(100, 0.0, 100.0, "multiplicity")],
            )
            registry.add("hDCAV0Daughters", "hDCAV0Daughters", [Axis(50, 0.0, 5.0, "dca_daughters")])
            registry.add("hLT", "hLT", [Axis(100, 0.0, 50.0, "ctau")])
            registry.add("hV0CosPA", "hV0CosPA", [Axis(100, 0.95, 1.0, "cos_pa")])
        return registry

    def multiplicity(self, collision: Collision) -> float:
        return collision_multiplicity(collision, self.config.estimator)

    def accepts_collision(self, collision: Collision) -> bool:
        return is_good_collision(collision, self.config.event)

    def select_pions(
        self,
        tracks: Sequence[ChargedCandidate],
        qa: HistogramRegistry | None = None,
    ) -> list[SelectedPion]:
        """Apply acceptance, PID and track-quality selection to bachelor candidates."""
        cfg = self.config
        out: list[SelectedPion] = []
        for track in tracks:
            if not passes_track_acceptance(track, cfg.acceptance):
                continue
            if qa is not None and cfg.qa.qa_before:
                qa.fill("hNsigmaPionTPC_before", track.tpc_n_sigma_pi)
                qa.fill("hNsigmaPionTOF_before", track.tof_n_sigma_pi)
            if not select_pid(track, cfg.pid):
                continue
            if not select_track(track, cfg.track):
                continue
            if qa is not None and cfg.qa.qa_after:
                qa.fill("hEta_after", track.eta)
                qa.fill("hDcaxy_after", track.dca_xy)
                qa.fill("hDcaz_after", track.dca_z)
                qa.fill("hNsigmaPionTPC_after", track.tpc_n_sigma_pi)
                qa.fill("hNsigmaPionTOF_after", track.tof_n_sigma_pi)
            out.append(
                SelectedPion(
                    track_id=track.track_id,
                    collision_id=track.collision_id,
                    p4=candidate_to_lorentz(track, self.pion_mass),
                )
            )
        return out

    def select_v0s(
        self,
        collision: Collision,
        v0s: Sequence[CompositeCandidate],
        resolver: TrackResolver,
        multiplicity: float,
        qa: HistogramRegistry | None = None,
    ) -> list[SelectedV0]:
        """Resolve daughters and apply daughter and topology selections to V0 candidates."""
        cfg = self.config
        v0_qa = qa if cfg.qa.qa_v0 else None
        out: list[SelectedV0] = []
        for v0 in v0s:
            pos = _resolve_daughter(resolver, v0, v0.pos_track_id, collision)
            neg = _resolve_daughter(resolver, v0, v0.neg_track_id, collision)
            if not is_selected_v0_daughter(pos, 1, pos.tpc_n_sigma_pi, cfg.v0_daughter):
                continue
            if not is_selected_v0_daughter(neg, -1, neg.tpc_n_sigma_pi, cfg.v0_daughter):
                continue
            if not select_v0(collision, v0, multiplicity, cfg.v0, qa=v0_qa):
                continue
            out.append(
                SelectedV0(
                    v0_id=v0.v0_id,
                    collision_id=v0.collision_id,
                    pos_track_id=pos.track_id,
                    neg_track_id=neg.track_id,
                    p4=candidate_to_lorentz(v0, self.k0s_mass),
                )
            )
        return out

    def process_same_event(
        self,
        event: EventInput,
        registry: HistogramRegistry,
        resolver: TrackResolver | None = None,
    ) -> int:
        """Pair pions with K0S candidates of one collision; return the number of fills."""
        collision = event.collision
        if not self.accepts_collision(collision):
            logger.debug("Collision %s rejected by event selection", collision.collision_id)
            return 0
        multiplicity = self.multiplicity(collision)
        registry.fill("hVertexZRec", collision.pos_z)
        registry.fill("hmult", multiplicity)

        resolver = resolver if resolver is not None else event.track_index()
        pions = self.select_pions(event.tracks, qa=registry)
        kshorts = self.select_v0s(collision, event.v0s, resolver, multiplicity, qa=registry)

        n_fills = 0
        for pion in pions:
            for kshort in kshorts:
                # A bachelor pion must not be one of the K0S daughters.
                if pion.track_id in (kshort.pos_track_id, kshort.neg_track_id):
                    continue
                if pion.collision_id != kshort.collision_id:
                    continue
                n_fills += self._fill_pair(registry, SAME_EVENT, multiplicity, pion.p4 + kshort.p4)
        logger.debug(
            "Collision %s: %d pions, %d K0S, %d same-event fills",
            collision.collision_id,
            len(pions),
            len(kshorts),
            n_fills,
        )
        return n_fills

    def process_mixed_pair(
        self,
        anchor: EventInput,
        partner: EventInput,
        registry: HistogramRegistry,
    ) -> int | None:
        """Pair pions of `anchor` with K0S candidates of `partner`.

        Returns the number of fills, or None when either collision fails the
        event selection. Roles are not swapped: the partner's pions and the
        anchor's V0s are never combined here. QA histograms are left to the
        same-event pass, so a candidate reused across many partners is not
        counted once per pair.
        """
        c1 = anchor.collision
        c2 = partner.collision
        if not self.accepts_collision(c1) or not self.accepts_collision(c2):
            return None
        multiplicity = self.multiplicity(c1)
        pions = self.select_pions(anchor.tracks)
        kshorts = self.select_v0s(c2, partner.v0s, partner.track_index(), multiplicity)
        n_fills = 0
        for pion, kshort in product(pions, kshorts):
            n_fills += self._fill_pair(registry, MIXED_EVENT, multiplicity, pion.p4 + kshort.p4)
        return n_fills

    def process_mixed_events(
        self,
        events: Sequence[EventInput],
        registry: HistogramRegistry,
        summary: RunSummary | None = None,
    ) -> int:
        """Mix all same-bin collision pairs; return the number of fills."""
        binning = BinningPolicy(self.config.mixing, self.config.estimator)
        generator = MixingPairGenerator(binning)
        n_fills = 0
        for anchor, partner in generator.pairs(events):
            fills = self.process_mixed_pair(anchor, partner, registry)
            if summary is not None:
                summary.mixed_pairs += 1
                if fills is None:
                    summary.mixed_pairs_rejected += 1
            n_fills += fills or 0
        return n_fills

    def run(self, events: Sequence[EventInput], registry: HistogramRegistry | None = None) -> RunSummary:
        """Run the enabled same-event and mixed-event passes over `events`."""
        summary = RunSummary(registry=self.book_histograms(registry))
        if self.config.process_same_event:
            self._run_same_event(events, summary)
        if self.config.process_mixed_event:
            summary.mixed_event_fills += self.process_mixed_events(events, summary.registry, summary)
        logger.info(
            "Processed %d collisions (%d rejected): %d same-event fills, "
            "%d mixed pairs (%d rejected), %d mixed-event fills",
            summary.collisions,
            summary.collisions_rejected,
            summary.same_event_fills,
            summary.mixed_pairs,
            summary.mixed_pairs_rejected,
            summary.mixed_event_fills,
        )
        return summary

    def _run_same_event(self, events: Sequence[EventInput], summary: RunSummary) -> None:
        for event in events:
            summary.collisions += 1
            if not self.accepts_collision(event.collision):
                summary.collisions_rejected += 1
                continue
            summary.same_event_fills += self.process_same_event(event, summary.registry)

    def _fill_pair(
        self,
        registry: HistogramRegistry,
        name: str,
        multiplicity: float,
        p4: LorentzVector,
    ) -> int:
        pt, rapidity, mass = pair_kinematics(p4)
        if not abs(rapidity) < self.config.pair_rapidity_max:
            return 0
        registry.fill(name, multiplicity, pt, mass)
        return 1


def run_analysis(
    events: Sequence[EventInput],
    config: AnalysisConfig | None = None,
    workers: int = 1,
) -> RunSummary:
    """Run a full pass, optionally spreading the same-event loop over worker processes.

    Each worker fills its own registry; partial results are merged in the
    parent. Event mixing always runs in the parent process.
    """
    config = config or AnalysisConfig()
    if workers <= 1 or not config.process_same_event:
        return KstarAnalysis(config).run(events)

    chunks = [list(events[i::workers]) for i in range(workers)]
    summary = RunSummary(registry=KstarAnalysis(config).book_histograms())
    with ProcessPoolExecutor(max_workers=workers) as pool:
        for partial in pool.map(_same_event_chunk, [config] * len(chunks), chunks):
            summary.merge(partial)
    if config.process_mixed_event:
        engine = KstarAnalysis(config)
        summary.mixed_event_fills += engine.process_mixed_events(events, summary.registry, summary)
    logger.info(
        "Processed %d collisions with %d workers: %d same-event fills, %d mixed-event fills",
        summary.collisions,
        workers,
        summary.same_event_fills,
        summary.mixed_event_fills,
    )
    return summary


def _same_event_chunk(config: AnalysisConfig, events: list[EventInput]) -> RunSummary:
    """Worker entry point: same-event pass over one partition of collisions."""
    engine = KstarAnalysis(config)
    summary = RunSummary(registry=engine.book_histograms())
    engine._run_same_event(events, summary)
    return summary


def _resolve_daughter(
    resolver: TrackResolver,
    v0: CompositeCandidate,
    track_id: int,
    collision: Collision,
) -> ChargedCandidate:
    try:
        return resolver[track_id]
    except KeyError as exc:
        raise DaughterResolutionError(v0.v0_id, track_id, collision.collision_id) from exc
