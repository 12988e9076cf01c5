"""Tests for ntuplereader.physics_objects."""

import math

import pytest

from ntuplereader.physics_objects import MET, Jet, Lepton


class TestOrdering:
    def test_jets_order_by_pt(self):
        soft = Jet(30.0, 0.0, 0.0, 0.1, 0)
        hard = Jet(80.0, 2.0, 1.0, 0.9, 5)
        assert soft < hard
        assert hard > soft
        assert sorted([soft, hard], reverse=True) == [hard, soft]

    def test_equal_pt_is_neither_less_nor_greater(self):
        a = Jet(50.0, 0.5, 0.0, 0.1, 0)
        b = Jet(50.0, -1.0, 2.0, 0.8, 5)
        assert not a < b
        assert not b < a
        assert a <= b and a >= b
        assert a != b

    def test_leptons_order_by_pt(self):
        leptons = [Lepton(11, 25.0, 0, 0, 0), Lepton(-13, 60.0, 0, 0, 0), Lepton(13, 40.0, 0, 0, 0)]
        assert [lep.pt for lep in sorted(leptons, reverse=True)] == [60.0, 40.0, 25.0]

    def test_comparison_with_other_types_fails(self):
        with pytest.raises(TypeError):
            Jet(1.0, 0, 0, 0, 0) < 5.0


class TestValueSemantics:
    def test_objects_are_frozen(self):
        jet = Jet(30.0, 0.0, 0.0, 0.1, 0)
        with pytest.raises(AttributeError):
            jet.pt = 40.0

    def test_equality_and_hash_use_all_fields(self):
        assert Lepton(11, 30.0, 1.0, 2.0, 0.05) == Lepton(11, 30.0, 1.0, 2.0, 0.05)
        assert len({Lepton(11, 30.0, 1.0, 2.0, 0.05), Lepton(11, 30.0, 1.0, 2.0, 0.05)}) == 1


class TestMET:
    def test_default_is_zero(self):
        assert MET() == MET(0.0, 0.0)

    def test_components(self):
        met = MET(10.0, math.pi / 2)
        assert met.px == pytest.approx(0.0, abs=1e-12)
        assert met.py == pytest.approx(10.0)
