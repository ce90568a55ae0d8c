"""
Record Builder Tests

Merging repeated accounts and expanding accounts into per-bureau records.
"""
from datetime import date

import pytest

from credit_parser.models.ssot import BUREAU_ORDER, Bureau, BureauFieldSet, ParsedAccount
from credit_parser.services.parsing.record_builder import RecordBuilder


def field_set(**values) -> BureauFieldSet:
    fs = BureauFieldSet(**values)
    fs.extracted_fields = list(values)
    return fs


class TestRecordBuilder:
    """Tests for RecordBuilder.merge and RecordBuilder.build"""

    @pytest.fixture
    def builder(self):
        return RecordBuilder()

    def test_three_records_per_account(self, builder):
        account = ParsedAccount(
            account_name="CHASE BANK USA",
            account_number="4444****",
            bureau_fields={Bureau.EXPERIAN: field_set(balance=10.0)},
        )
        records = builder.build([account])

        assert [r.bureau for r in records] == BUREAU_ORDER
        assert records[1].fields.balance == 10.0
        assert records[0].fields.is_empty()
        assert records[0].normalized_account_number == "4444"

    def test_merge_fills_missing_bureaus(self, builder):
        first = ParsedAccount(
            account_name="CHASE BANK USA",
            account_number="4444****",
            bureau_fields={Bureau.TRANSUNION: field_set(balance=1.0)},
        )
        second = ParsedAccount(
            account_name="Chase  Bank USA",
            account_number=None,
            account_type="Revolving",
            bureau_fields={
                Bureau.TRANSUNION: field_set(balance=99.0, status="CURRENT"),
                Bureau.EQUIFAX: field_set(balance=3.0),
            },
        )
        merged = builder.merge([first, second])

        assert len(merged) == 1
        account = merged[0]
        assert account.account_type == "Revolving"
        assert account.bureau_fields[Bureau.TRANSUNION].balance == 1.0
        assert account.bureau_fields[Bureau.TRANSUNION].status == "CURRENT"
        assert account.bureau_fields[Bureau.EQUIFAX].balance == 3.0

    def test_different_numbers_stay_separate(self, builder):
        accounts = [
            ParsedAccount(account_name="CAPITAL ONE", account_number="5178****1111"),
            ParsedAccount(account_name="CAPITAL ONE", account_number="5178****2222"),
        ]
        assert len(builder.build(accounts)) == 6

    def test_shared_fields_copied(self, builder):
        account = ParsedAccount(
            account_name="MIDLAND CREDIT MANAGEMENT",
            shared=True,
            shared_fields=field_set(balance=640.0),
            date_opened=date(2019, 1, 15),
        )
        records = builder.build([account])

        assert [r.fields.balance for r in records] == [640.0, 640.0, 640.0]
        assert all(r.date_opened == date(2019, 1, 15) for r in records)
        assert records[0].fields is not records[1].fields

    def test_explicit_fields_beat_shared(self, builder):
        account = ParsedAccount(
            account_name="MIDLAND CREDIT MANAGEMENT",
            shared=True,
            shared_fields=field_set(balance=640.0),
            bureau_fields={Bureau.EQUIFAX: field_set(balance=700.0)},
        )
        records = builder.build([account])
        assert [r.fields.balance for r in records] == [640.0, 640.0, 700.0]

    def test_uniqueness_keys(self, builder):
        accounts = [ParsedAccount(account_name="CHASE BANK USA", account_number="4444")]
        records = builder.build(accounts)
        assert len({r.uniqueness_key for r in records}) == 3
