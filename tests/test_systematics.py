"""Tests for ntuplereader.systematics: selector normalization and variant choice."""

import pytest

from ntuplereader.systematics import (
    SystDirection,
    SystType,
    Variant,
    normalize_selector,
    parse_syst_type,
    select_variant,
)


class TestSelectVariant:
    def test_jec_up(self):
        assert select_variant(True, SystType.JEC, SystDirection.UP) is Variant.JEC_UP

    def test_jec_down(self):
        assert select_variant(True, SystType.JEC, SystDirection.DOWN) is Variant.JEC_DOWN

    def test_nominal(self):
        assert select_variant(True, SystType.NOMINAL, SystDirection.UP) is Variant.NOMINAL

    @pytest.mark.parametrize("syst_type", [t for t in SystType if t is not SystType.JEC])
    @pytest.mark.parametrize("direction", list(SystDirection))
    def test_non_jec_types_keep_nominal(self, syst_type, direction):
        assert select_variant(True, syst_type, direction) is Variant.NOMINAL

    @pytest.mark.parametrize("direction", list(SystDirection))
    def test_data_never_selects_variants(self, direction):
        assert select_variant(False, SystType.JEC, direction) is Variant.NOMINAL


class TestNormalizeSelector:
    def test_nominal_forces_up(self):
        assert normalize_selector(SystType.NOMINAL, SystDirection.DOWN) == (
            SystType.NOMINAL, SystDirection.UP,
        )

    def test_other_types_keep_direction(self):
        assert normalize_selector(SystType.BTAG_HF, SystDirection.DOWN) == (
            SystType.BTAG_HF, SystDirection.DOWN,
        )


class TestParseSystType:
    def test_by_value(self):
        assert parse_syst_type("jec") is SystType.JEC

    def test_by_name(self):
        assert parse_syst_type("BTAG_HF_STATS1") is SystType.BTAG_HF_STATS1

    def test_unknown_raises(self):
        with pytest.raises(ValueError, match="Unknown systematic type"):
            parse_syst_type("jer")
