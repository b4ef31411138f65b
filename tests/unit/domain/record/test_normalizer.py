"""Unit tests for RecordNormalizer."""

from datetime import date, datetime, timezone

import pytest

from eacchain.domain.record.model.record import SKIP, Record
from eacchain.domain.record.model.rules import NormalizationRules, RenameRule
from eacchain.domain.record.service.normalizer import RecordNormalizer
from eacchain.domain.shared.error import ValidationError


@pytest.fixture
def normalizer() -> RecordNormalizer:
    return RecordNormalizer()


@pytest.fixture
def rules() -> NormalizationRules:
    return NormalizationRules(
        key_field="contract_id",
        redact=frozenset({"step9_transaction_complete", "order_cid"}),
        numeric=frozenset({"volume_MWh"}),
        dates=frozenset({"contractDate"}),
        renames=(RenameRule(name="legacy-tranche-id", source="tranche_id", target="contract_id"),),
    )


class TestNormalize:
    def test_coerces_redacts_and_keeps_other_fields(self, normalizer, rules):
        row = {
            "contract_id": " C1 ",
            "volume_MWh": "1,250.5",
            "contractDate": "2021-06-01",
            "step9_transaction_complete": "TRUE",
            "country": "US",
        }

        record = normalizer.normalize(row, rules, "contract")

        assert isinstance(record, Record)
        assert record.data == {
            "contract_id": "C1",
            "volume_MWh": 1250.5,
            "contractDate": "2021-06-01",
            "country": "US",
        }

    def test_does_not_mutate_source_row(self, normalizer, rules):
        row = {"contract_id": "C1", "volume_MWh": "7", "step9_transaction_complete": "x"}
        snapshot = dict(row)

        normalizer.normalize(row, rules, "contract")

        assert row == snapshot

    @pytest.mark.parametrize("key", [None, "", "   "])
    def test_missing_key_skips_row(self, normalizer, rules, key):
        assert normalizer.normalize({"contract_id": key, "volume_MWh": None}, rules, "contract") is SKIP

    def test_row_without_key_column_skips(self, normalizer, rules):
        assert normalizer.normalize({"volume_MWh": "3"}, rules, "contract") is SKIP

    def test_blank_strings_become_none(self, normalizer, rules):
        record = normalizer.normalize({"contract_id": "C1", "note": "  "}, rules, "contract")
        assert record["note"] is None

    def test_column_names_are_stripped(self, normalizer, rules):
        record = normalizer.normalize({" contract_id ": "C1", "volume_MWh ": "2"}, rules, "contract")
        assert record.data == {"contract_id": "C1", "volume_MWh": 2}


class TestRenameRules:
    def test_legacy_tranche_id_is_renamed_and_reported(self, normalizer, rules):
        result = normalizer.normalize_with_trace(
            {"tranche_id": "T7", "volume_MWh": "1"}, rules, "contract"
        )

        assert result.applied_rules == ["legacy-tranche-id"]
        assert result.record is not SKIP
        assert result.record.data == {"contract_id": "T7", "volume_MWh": 1}

    def test_rule_does_not_override_existing_target(self, normalizer, rules):
        result = normalizer.normalize_with_trace(
            {"contract_id": "C1", "tranche_id": "T7"}, rules, "contract"
        )

        assert result.applied_rules == []
        assert result.record.data == {"contract_id": "C1", "tranche_id": "T7"}

    def test_rule_keeps_column_position(self, normalizer, rules):
        record = normalizer.normalize({"a": "1", "tranche_id": "T7", "b": "2"}, rules, "contract")
        assert record.keys() == ["a", "contract_id", "b"]


class TestCoerceNumber:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("1,250.5", 1250.5),
            (" 1,000 ", 1000),
            ("42.0", 42),
            ("-3.25", -3.25),
            (7, 7),
            (2.0, 2),
            (None, None),
            ("", None),
        ],
    )
    def test_values(self, raw, expected):
        result = RecordNormalizer.coerce_number(raw, "volume_MWh")
        assert result == expected
        assert type(result) is type(expected)

    @pytest.mark.parametrize("raw", ["abc", "1.2.3", "NaN", True])
    def test_invalid_values_raise(self, raw):
        with pytest.raises(ValidationError) as exc_info:
            RecordNormalizer.coerce_number(raw, "volume_MWh")
        assert exc_info.value.field == "volume_MWh"


class TestNormalizeDate:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("2021-06-01", "2021-06-01"),
            ("2021/06/01", "2021-06-01"),
            ("06/15/2021", "2021-06-15"),
            ("15.06.2021", "2021-06-15"),
            ("2021-06-01 13:45:00", "2021-06-01T13:45:00"),
            ("2021-06-01T13:45:00Z", "2021-06-01T13:45:00+00:00"),
            (date(2021, 6, 1), "2021-06-01"),
            (datetime(2021, 6, 1, 13, 45, tzinfo=timezone.utc), "2021-06-01T13:45:00+00:00"),
        ],
    )
    def test_iso_output(self, normalizer, raw, expected):
        assert normalizer.normalize_date(raw, "contractDate") == expected

    def test_unparseable_date_raises(self, normalizer):
        with pytest.raises(ValidationError) as exc_info:
            normalizer.normalize_date("first of June", "contractDate")
        assert exc_info.value.field == "contractDate"

    def test_date_objects_in_other_columns_are_normalized(self, normalizer, rules):
        record = normalizer.normalize(
            {"contract_id": "C1", "deliveryDate": date(2022, 1, 31)}, rules, "contract"
        )
        assert record["deliveryDate"] == "2022-01-31"
