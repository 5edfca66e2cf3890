"""Tests for catsero.normalizer - titer cleanup, corrections, rejections."""

import copy
import math
from datetime import datetime

import pytest

from catsero.config import PipelineConfig
from catsero.exceptions import RecordRejected
from catsero.models import AgeClass, CatRecord, LifeStage, RejectionReason
from catsero.normalizer import (
    clean_titer,
    normalize,
    normalize_record,
    to_coordinate,
    to_day_of_year,
    to_flag,
)


class TestCleanTiter:
    """Tests for titer string cleanup and correction."""

    @pytest.mark.parametrize("raw", ["<40", "< 40", " <40 ", "(<40)", "<40*", "titer <40"])
    def test_less_than_40_is_20(self, raw) -> None:
        assert clean_titer(raw) == 20

    def test_less_than_400_is_not_below_detection(self) -> None:
        assert clean_titer("<400") == 400

    def test_strips_non_digits(self) -> None:
        assert clean_titer("160*") == 160
        assert clean_titer(" 1,280 ") == 1280

    def test_numeric_input(self) -> None:
        assert clean_titer(640) == 640
        assert clean_titer(640.0) == 640

    @pytest.mark.parametrize("raw,expected", [("40.0", 40), (" 640.00 ", 640), ("160.", 160)])
    def test_whole_decimal_string_keeps_integer_part(self, raw, expected) -> None:
        assert clean_titer(raw) == expected

    @pytest.mark.parametrize("raw", ["12.5", "40.01"])
    def test_fractional_decimal_string_rejected(self, raw) -> None:
        with pytest.raises(RecordRejected) as info:
            clean_titer(raw)
        assert info.value.reason is RejectionReason.MALFORMED_TITER

    def test_decimal_string_matches_numeric_path(self) -> None:
        assert clean_titer("5180.0", {5180: 5120}) == clean_titer(5180.0, {5180: 5120}) == 5120

    @pytest.mark.parametrize("raw", ["", "n/a", "pos", True, 12.5, -40, float("nan")])
    def test_unparsable_is_rejected(self, raw) -> None:
        with pytest.raises(RecordRejected) as info:
            clean_titer(raw)
        assert info.value.reason is RejectionReason.MALFORMED_TITER

    def test_correction_table(self, default_config: PipelineConfig) -> None:
        assert clean_titer("5180", default_config.titer_corrections) == 5120
        assert clean_titer("51200", default_config.titer_corrections) == 5120
        assert clean_titer("5120", default_config.titer_corrections) == 5120

    def test_correction_applies_after_cleanup(self) -> None:
        assert clean_titer("5180*", {5180: 5120}) == 5120

    def test_no_table_no_correction(self) -> None:
        assert clean_titer("5180") == 5180


class TestFieldConverters:
    """Tests for date, flag and coordinate conversion."""

    def test_day_of_year(self) -> None:
        assert to_day_of_year("01/01/2020") == 1
        assert to_day_of_year("12/31/2020") == 366
        assert to_day_of_year("12/31/2019") == 365
        assert to_day_of_year("3/5/2019") == 64

    def test_day_of_year_from_datetime(self) -> None:
        assert to_day_of_year(datetime(2019, 2, 1)) == 32

    @pytest.mark.parametrize("raw", ["2019-03-15", "13/01/2019", "02/30/2019", "soon"])
    def test_bad_date_rejected(self, raw) -> None:
        with pytest.raises(RecordRejected) as info:
            to_day_of_year(raw)
        assert info.value.reason is RejectionReason.MALFORMED_DATE

    @pytest.mark.parametrize("raw,expected", [("1", True), ("0", False), (1, True), ("0.0", False), (False, False)])
    def test_flags(self, raw, expected) -> None:
        assert to_flag(raw, "fiv") is expected

    @pytest.mark.parametrize("raw", ["2", "yes", "-1"])
    def test_bad_flag_rejected(self, raw) -> None:
        with pytest.raises(RecordRejected) as info:
            to_flag(raw, "felv")
        assert info.value.reason is RejectionReason.MALFORMED_FLAG
        assert info.value.field == "felv"

    def test_coordinates(self) -> None:
        assert to_coordinate(" 47.25 ", "latitude") == 47.25
        with pytest.raises(RecordRejected):
            to_coordinate("95", "latitude")
        with pytest.raises(RecordRejected):
            to_coordinate("east", "longitude")


class TestNormalizeRecord:
    """Tests for building a single CatRecord."""

    def test_complete_row(self, row_factory) -> None:
        rec = normalize_record(7, row_factory(toxo_titer="<40", fiv="1", age="6-12mo", life_stage="juvenile"))
        assert isinstance(rec, CatRecord)
        assert rec.record_id == 7
        assert rec.colony_id == "Harbor"
        assert rec.toxo_titer == 20
        assert (rec.toxo_exposed_40, rec.toxo_exposed_160, rec.toxo_exposed_320) == (False, False, False)
        assert rec.fiv_exposed is True and rec.felv_exposed is False
        assert rec.age_class is AgeClass.FROM_6_TO_12MO
        assert rec.life_stage is LifeStage.JUVENILE
        assert rec.collection_day_of_year == 74
        assert math.isclose(rec.latitude, 47.60)

    def test_float_column_titer_not_inflated(self, row_factory) -> None:
        rec = normalize([row_factory(toxo_titer="40.0")]).records[0]
        assert rec.toxo_titer == 40
        assert (rec.toxo_exposed_40, rec.toxo_exposed_160, rec.toxo_exposed_320) == (True, False, False)

    def test_corrected_titer_drives_flags(self, row_factory) -> None:
        rec = normalize_record(0, row_factory(toxo_titer="5180"), PipelineConfig())
        assert rec.toxo_titer == 5120
        assert (rec.toxo_exposed_40, rec.toxo_exposed_160, rec.toxo_exposed_320) == (True, True, True)

    def test_cohort_type_case_insensitive(self, row_factory) -> None:
        assert normalize_record(0, row_factory(cohort_type=" Colony ")).colony_id == "Harbor"

    def test_wrong_cohort_type_checked_first(self, row_factory) -> None:
        with pytest.raises(RecordRejected) as info:
            normalize_record(0, row_factory(cohort_type="feral", toxo_titer=None))
        assert info.value.reason is RejectionReason.WRONG_COHORT_TYPE

    @pytest.mark.parametrize("field", ["colony_id", "latitude", "longitude", "date", "age",
                                       "life_stage", "toxo_titer", "fiv", "felv", "cohort_type"])
    def test_missing_field_rejected(self, row_factory, field) -> None:
        row = row_factory()
        del row[field]
        with pytest.raises(RecordRejected) as info:
            normalize_record(0, row)
        assert info.value.reason is RejectionReason.MISSING_REQUIRED_FIELD
        assert info.value.field == field

    @pytest.mark.parametrize("blank", [None, "", "   ", float("nan")])
    def test_blank_counts_as_missing(self, row_factory, blank) -> None:
        with pytest.raises(RecordRejected) as info:
            normalize_record(0, row_factory(felv=blank))
        assert info.value.reason is RejectionReason.MISSING_REQUIRED_FIELD


class TestNormalize:
    """Tests for batch normalization and rejection accounting."""

    def test_counts(self, survey_rows) -> None:
        result = normalize(survey_rows)
        assert len(result.records) == 5
        assert result.rejected_count == 5
        assert [r.index for r in result.rejections] == [5, 6, 7, 8, 9]
        by_reason = result.rejections_by_reason()
        assert by_reason[RejectionReason.WRONG_COHORT_TYPE] == 1
        assert by_reason[RejectionReason.MISSING_REQUIRED_FIELD] == 1
        assert by_reason[RejectionReason.MALFORMED_TITER] == 1
        assert by_reason[RejectionReason.MALFORMED_DATE] == 1
        assert by_reason[RejectionReason.MALFORMED_CATEGORY] == 1

    def test_every_row_accounted_for(self, survey_rows) -> None:
        result = normalize(survey_rows)
        assert len(result.records) + result.rejected_count == len(survey_rows)

    def test_inputs_not_mutated(self, survey_rows) -> None:
        before = copy.deepcopy(survey_rows)
        normalize(survey_rows)
        assert survey_rows == before

    def test_erroneous_titer_never_in_output(self, survey_rows) -> None:
        titers = {r.toxo_titer for r in normalize(survey_rows).records}
        assert 5180 not in titers
        assert 5120 in titers

    def test_records_are_immutable(self, survey_rows) -> None:
        rec = normalize(survey_rows).records[0]
        with pytest.raises(AttributeError):
            rec.toxo_titer = 0

    def test_threshold_monotonicity(self, survey_rows) -> None:
        for r in normalize(survey_rows).records:
            assert not r.toxo_exposed_160 or r.toxo_exposed_40
            assert not r.toxo_exposed_320 or r.toxo_exposed_160

    def test_empty_input(self) -> None:
        result = normalize([])
        assert result.records == () and result.rejections == ()

    def test_custom_config(self, row_factory) -> None:
        cfg = PipelineConfig(managed_cohort_type="managed", date_format="%Y-%m-%d",
                             age_aliases={"adult": ">12mo"})
        rows = [row_factory(cohort_type="managed", date="2019-01-10", age="adult")]
        result = normalize(rows, cfg)
        assert result.rejected_count == 0
        assert result.records[0].collection_day_of_year == 10
        assert result.records[0].age_class is AgeClass.OVER_12MO
