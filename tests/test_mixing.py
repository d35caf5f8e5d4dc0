"""Unit tests for collision binning, pair generation and the mixed-event loop."""

from __future__ import annotations

import unittest
from collections import Counter
from dataclasses import replace

from kstarmix import (
    MIXED_EVENT,
    SAME_EVENT,
    AnalysisConfig,
    Axis,
    BinningPolicy,
    ChargedCandidate,
    Collision,
    CompositeCandidate,
    DaughterResolutionError,
    EventInput,
    HistogramRegistry,
    KstarAnalysis,
    LorentzVector,
    MixingConfig,
    MixingPairGenerator,
    MultiplicityEstimator,
    QAFlags,
    TrackSelectionCuts,
    make_k0short,
    make_pion,
    run_analysis,
)


def _collision(cid: int, z: float = 0.5, cent: float = 30.0, sel8: bool = True, **kw) -> Collision:
    return Collision(collision_id=cid, pos_x=0.0, pos_y=0.0, pos_z=z, sel8=sel8, cent_ft0c=cent, **kw)


def _pion(track_id: int, cid: int, **kw) -> ChargedCandidate:
    track = ChargedCandidate(
        track_id=track_id,
        collision_id=cid,
        pt=1.0,
        eta=0.0,
        phi=0.0,
        sign=1,
        is_global_track_wo_dca=True,
        dca_xy=0.5,
        dca_z=0.5,
        tpc_n_sigma_pi=0.5,
    )
    return replace(track, **kw)


def _daughter(track_id: int, cid: int, sign: int, **kw) -> ChargedCandidate:
    """Good V0 daughter that fails the bachelor DCA acceptance."""
    track = ChargedCandidate(
        track_id=track_id,
        collision_id=cid,
        pt=0.8,
        eta=0.1,
        phi=0.4,
        sign=sign,
        has_tpc=True,
        tpc_n_cls_found=120,
        tpc_n_cls_crossed_rows=120,
        tpc_crossed_rows_over_findable_cls=0.95,
        dca_xy=2.5,
        dca_z=0.5,
        tpc_n_sigma_pi=0.5,
    )
    return replace(track, **kw)


def _v0(v0_id: int, cid: int, pos: int, neg: int, **kw) -> CompositeCandidate:
    v0 = CompositeCandidate(
        v0_id=v0_id,
        collision_id=cid,
        pt=1.5,
        eta=0.0,
        phi=0.5,
        mass=make_k0short().mass,
        rapidity=0.0,
        pos_track_id=pos,
        neg_track_id=neg,
        px=1.5,
        x=1.0,
        dca_v0_to_pv=0.1,
        dca_v0_daughters=0.5,
        v0_cos_pa=0.999,
        v0_radius=1.0,
        qt_arm=0.1,
        alpha=0.3,
    )
    return replace(v0, **kw)


def _pion_event(cid: int, pion_kw: dict | None = None, **kw) -> EventInput:
    pion = _pion(cid * 100 + 1, cid, **(pion_kw or {}))
    return EventInput(collision=_collision(cid, **kw), tracks=(pion,), v0s=())


def _v0_event(cid: int, v0_kw: dict | None = None, pos_kw: dict | None = None, **kw) -> EventInput:
    base = cid * 100
    tracks = (_daughter(base + 10, cid, **{"sign": 1, **(pos_kw or {})}), _daughter(base + 11, cid, -1))
    v0 = _v0(base, cid, base + 10, base + 11, **(v0_kw or {}))
    return EventInput(collision=_collision(cid, **kw), tracks=tracks, v0s=(v0,))


def _empty_event(cid: int, **kw) -> EventInput:
    return EventInput(collision=_collision(cid, **kw), tracks=(), v0s=())


class TestBinningPolicy(unittest.TestCase):
    """Validate the (vertex-z, multiplicity) bin key."""

    def test_bin_key_from_vertex_and_estimator(self) -> None:
        binning = BinningPolicy(MixingConfig(), MultiplicityEstimator.FT0C_CENT)
        self.assertEqual(binning.bin_key(_collision(0, z=0.5, cent=30.0)), (10, 6))
        self.assertEqual(binning.bin_key(_collision(1, z=-9.5, cent=99.0)), (0, 19))

    def test_collisions_outside_axes_have_no_key(self) -> None:
        binning = BinningPolicy(MixingConfig())
        self.assertIsNone(binning.bin_key(_collision(0, z=10.0)))
        self.assertIsNone(binning.bin_key(_collision(1, cent=100.0)))

    def test_contributor_binning(self) -> None:
        config = MixingConfig(multiplicity_axis=Axis(2000, 0.0, 10000.0), binning_variable="contributors")
        binning = BinningPolicy(config)
        self.assertEqual(binning.bin_key(_collision(0, num_contrib=12)), (10, 2))


class TestMixingPairGenerator(unittest.TestCase):
    """Validate bin confinement, per-anchor bound and uniqueness of mixed pairs."""

    def _pairs(self, events, n_mix=5, seed=None):
        generator = MixingPairGenerator(BinningPolicy(MixingConfig(n_mix=n_mix, seed=seed)))
        return [(a.collision.collision_id, b.collision.collision_id) for a, b in generator.pairs(events)]

    def test_pairs_only_within_same_bin(self) -> None:
        events = [
            _empty_event(0, z=0.5),
            _empty_event(1, z=0.6),
            _empty_event(2, z=-5.5),
            _empty_event(3, z=-5.2),
            _empty_event(4, z=0.7, cent=80.0),
        ]
        binning = BinningPolicy(MixingConfig())
        by_id = {e.collision.collision_id: e.collision for e in events}
        pairs = self._pairs(events)
        self.assertEqual(sorted(pairs), [(0, 1), (2, 3)])
        for a, b in pairs:
            self.assertEqual(binning.bin_key(by_id[a]), binning.bin_key(by_id[b]))

    def test_partner_bound_applies_per_anchor(self) -> None:
        events = [_empty_event(i) for i in range(8)]
        pairs = self._pairs(events, n_mix=3)
        anchors = Counter(a for a, _ in pairs)
        self.assertTrue(all(count <= 3 for count in anchors.values()))
        # 5 anchors get 3 partners, then 2, 1 and 0 remain.
        self.assertEqual(len(pairs), 5 * 3 + 2 + 1)

    def test_no_self_pairs_and_no_duplicates(self) -> None:
        events = [_empty_event(i) for i in range(10)]
        for seed in (None, 1, 2):
            with self.subTest(seed=seed):
                pairs = self._pairs(events, n_mix=4, seed=seed)
                self.assertTrue(all(a != b for a, b in pairs))
                unordered = [frozenset(p) for p in pairs]
                self.assertEqual(len(unordered), len(set(unordered)))

    def test_seeded_generation_is_reproducible(self) -> None:
        events = [_empty_event(i) for i in range(12)]
        self.assertEqual(self._pairs(events, n_mix=2, seed=7), self._pairs(events, n_mix=2, seed=7))
        self.assertEqual(self._pairs(events, n_mix=1)[:3], [(0, 1), (1, 2), (2, 3)])

    def test_zero_partners_yields_nothing(self) -> None:
        self.assertEqual(self._pairs([_empty_event(0), _empty_event(1)], n_mix=0), [])


class TestMixedEvent(unittest.TestCase):
    """Validate the mixed-event pair loop."""

    def setUp(self) -> None:
        self.config = AnalysisConfig(process_same_event=False)
        self.engine = KstarAnalysis(self.config)

    def test_single_mixed_pair_fill(self) -> None:
        """Pion in c1 and K0S in c2 of the same bin give exactly one mixed fill."""
        summary = self.engine.run([_pion_event(1), _v0_event(2, z=0.6, cent=31.0)])
        self.assertEqual(summary.mixed_event_fills, 1)
        hist = summary.registry.get(MIXED_EVENT)
        self.assertEqual(hist.entries, 1.0)
        self.assertEqual(summary.registry.get(SAME_EVENT).entries, 0.0)

        expected = LorentzVector.from_pt_eta_phi_m(1.0, 0.0, 0.0, make_pion().mass) + (
            LorentzVector.from_pt_eta_phi_m(1.5, 0.0, 0.5, make_k0short().mass)
        )
        [(coords, content)] = list(hist.cells())
        self.assertEqual(content, 1.0)
        # Multiplicity is taken from the anchor collision (30), not the partner (31).
        self.assertAlmostEqual(coords[0], 30.5, places=9)
        self.assertLessEqual(abs(coords[2] - expected.mass), 0.005 + 1e-9)

    def test_mixed_pair_outside_rapidity_window_is_not_filled(self) -> None:
        anchor = _pion_event(1, pion_kw=dict(eta=0.75, pt=3.0))
        partner = _v0_event(2, v0_kw=dict(eta=0.7, pt=3.0, phi=0.0))
        p4 = LorentzVector.from_pt_eta_phi_m(3.0, 0.75, 0.0, make_pion().mass) + (
            LorentzVector.from_pt_eta_phi_m(3.0, 0.7, 0.0, make_k0short().mass)
        )
        self.assertGreaterEqual(abs(p4.rapidity), 0.5)
        summary = self.engine.run([anchor, partner])
        self.assertEqual(summary.mixed_pairs, 1)
        self.assertEqual(summary.mixed_event_fills, 0)
        self.assertEqual(summary.registry.get(MIXED_EVENT).entries, 0.0)

    def test_anchor_pion_failing_selection_gives_no_fill(self) -> None:
        cases = {
            "pid": (self.config, dict(tpc_n_sigma_pi=5.0)),
            "acceptance": (self.config, dict(pt=0.1)),
            "track quality": (
                replace(self.config, track=TrackSelectionCuts(custom_dca_policy=True)),
                dict(is_global_track=False, is_pv_contributor=False, its_n_cls=0),
            ),
        }
        for label, (config, pion_kw) in cases.items():
            with self.subTest(label):
                summary = KstarAnalysis(config).run([_pion_event(1, pion_kw=pion_kw), _v0_event(2)])
                self.assertEqual(summary.mixed_pairs, 1)
                self.assertEqual(summary.mixed_pairs_rejected, 0)
                self.assertEqual(summary.mixed_event_fills, 0)

    def test_partner_v0_failing_selection_gives_no_fill(self) -> None:
        cases = {
            "daughter pid": dict(pos_kw=dict(tpc_n_sigma_pi=5.0)),
            "daughter charge": dict(pos_kw=dict(sign=-1)),
            "pointing angle": dict(v0_kw=dict(v0_cos_pa=0.9)),
            "armenteros": dict(v0_kw=dict(alpha=0.0)),
            "mass window": dict(v0_kw=dict(mass=0.53)),
        }
        for label, overrides in cases.items():
            with self.subTest(label):
                summary = self.engine.run([_pion_event(1), _v0_event(2, **overrides)])
                self.assertEqual(summary.mixed_pairs, 1)
                self.assertEqual(summary.mixed_event_fills, 0)

    def test_partner_daughters_resolve_in_partner_tracks_only(self) -> None:
        """A partner V0 whose daughter is missing from the partner's tracks is an input error."""
        partner = _v0_event(2)
        broken = EventInput(collision=partner.collision, tracks=partner.tracks[:1], v0s=partner.v0s)
        # The missing daughter exists in the anchor, which must not be consulted.
        anchor = EventInput(
            collision=_collision(1),
            tracks=(_pion(101, 1), _daughter(211, 1, -1)),
            v0s=(),
        )
        with self.assertRaises(DaughterResolutionError) as ctx:
            self.engine.process_mixed_pair(anchor, broken, self.engine.book_histograms())
        self.assertEqual(ctx.exception.track_id, 211)
        self.assertEqual(ctx.exception.collision_id, 2)

    def test_v0_qa_is_filled_by_same_event_pass_only(self) -> None:
        engine = KstarAnalysis(replace(self.config, qa=QAFlags(qa_v0=True)))
        summary = engine.run([_pion_event(1), _v0_event(2)])
        self.assertEqual(summary.mixed_event_fills, 1)
        self.assertEqual(summary.registry.get("hV0CosPA").entries, 0.0)
        both = KstarAnalysis(AnalysisConfig(qa=QAFlags(qa_v0=True))).run([_pion_event(1), _v0_event(2)])
        self.assertEqual(both.registry.get("hV0CosPA").entries, 1.0)

    def test_role_assignment_is_not_swapped(self) -> None:
        """K0S candidates of the anchor are never combined with pions of the partner."""
        summary = self.engine.run([_v0_event(1), _pion_event(2)])
        self.assertEqual(summary.mixed_pairs, 1)
        self.assertEqual(summary.mixed_event_fills, 0)

    def test_different_bins_never_mix(self) -> None:
        summary = self.engine.run([_pion_event(1), _v0_event(2, z=-4.0)])
        self.assertEqual(summary.mixed_pairs, 0)
        self.assertEqual(summary.registry.get(MIXED_EVENT).entries, 0.0)

    def test_pair_with_rejected_collision_is_skipped(self) -> None:
        summary = self.engine.run([_pion_event(1), _v0_event(2, sel8=False)])
        self.assertEqual(summary.mixed_pairs, 1)
        self.assertEqual(summary.mixed_pairs_rejected, 1)
        self.assertEqual(summary.mixed_event_fills, 0)

    def test_process_switches(self) -> None:
        events = [_pion_event(1), _v0_event(2)]
        engine = KstarAnalysis(replace(self.config, process_mixed_event=False))
        summary = engine.run(events)
        self.assertEqual(summary.mixed_pairs, 0)
        self.assertEqual(summary.collisions, 0)

    def test_mixed_fills_land_in_separate_histogram(self) -> None:
        engine = KstarAnalysis(AnalysisConfig())
        registry = engine.book_histograms(HistogramRegistry())
        events = [_pion_event(1), _v0_event(2)]
        fills = engine.process_mixed_events(events, registry)
        self.assertEqual(fills, 1)
        self.assertEqual(registry.get(MIXED_EVENT).entries, 1.0)
        self.assertEqual(registry.get(SAME_EVENT).entries, 0.0)

    def test_worker_processes_match_inline_run(self) -> None:
        events = [_pion_event(1), _v0_event(2), _pion_event(3, z=-3.5), _v0_event(4, z=-3.2)]
        config = AnalysisConfig()
        inline = run_analysis(events, config)
        parallel = run_analysis(events, config, workers=2)
        self.assertEqual(parallel.collisions, inline.collisions)
        self.assertEqual(parallel.mixed_event_fills, inline.mixed_event_fills)
        self.assertEqual(parallel.mixed_event_fills, 2)
        for name in inline.registry.names():
            self.assertTrue((parallel.registry.get(name).counts == inline.registry.get(name).counts).all(), name)


if __name__ == "__main__":
    unittest.main()
