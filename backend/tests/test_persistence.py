"""
Report Repository Tests

Persistence of parse results into an in-memory SQLite database:
- Scores, profiles and one credit item per (account, bureau)
- Re-saving the same report skips existing items
- Any failure rolls the whole report back
"""
from datetime import date

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from credit_parser.database import init_db
from credit_parser.models.db_models import CreditItemDB, CreditScoreDB, PersonalProfileDB
from credit_parser.services.parsing import parse_report
from credit_parser.services.persistence import ReportRepository


REPORT = """Report Date: 01/15/2024
CREDIT SCORE
TransUnion Experian Equifax
Credit Score: 720 715 730

PERSONAL PROFILE
| | TransUnion | Experian | Equifax |
| Name: | JOHN DOE | JOHN DOE | JOHN A DOE |

CREDIT ACCOUNTS
1. CHASE BANK USA
Account #: 4444****
TransUnion Experian Equifax
Account Status: Open Open Closed
Balance: $1,250.00 $1,300.00 $1,250.00
"""


@pytest.fixture
def db():
    engine = create_engine("sqlite://")
    init_db(bind=engine)
    session = sessionmaker(bind=engine, autocommit=False, autoflush=False)()
    yield session
    session.close()


@pytest.fixture
def result():
    return parse_report(REPORT)


class TestReportRepository:
    """Tests for ReportRepository.save"""

    def test_save_report(self, db, result):
        summary = ReportRepository(db).save("client-1", result)

        assert summary.score_saved is True
        assert summary.profiles_saved == 3
        assert summary.items_inserted == 3
        assert summary.items_skipped == 0

        score = db.query(CreditScoreDB).one()
        assert (score.transunion, score.experian, score.equifax) == (720, 715, 730)
        assert score.report_date == date(2024, 1, 15)

        items = db.query(CreditItemDB).filter(CreditItemDB.client_id == "client-1").all()
        assert {item.bureau for item in items} == {"transunion", "experian", "equifax"}
        experian = next(item for item in items if item.bureau == "experian")
        assert experian.balance == 1300.00
        assert experian.account_number_last4 == "4444"
        assert experian.dispute_status == "pending"
        assert experian.discrepancy_flags == ["INACCURATE_BALANCE"]

    def test_profiles_one_row_per_bureau(self, db, result):
        repository = ReportRepository(db)
        repository.save("client-1", result)
        repository.save("client-1", result)

        profiles = db.query(PersonalProfileDB).filter(PersonalProfileDB.client_id == "client-1").all()
        assert len(profiles) == 3
        names = {p.bureau: p.name for p in profiles}
        assert names["equifax"] == "JOHN A DOE"

    def test_second_save_skips_existing_items(self, db, result):
        repository = ReportRepository(db)
        repository.save("client-1", result)
        summary = repository.save("client-1", result)

        assert summary.items_inserted == 0
        assert summary.items_skipped == 3
        assert db.query(CreditItemDB).count() == 3

    def test_items_are_per_client(self, db, result):
        repository = ReportRepository(db)
        repository.save("client-1", result)
        summary = repository.save("client-2", result)

        assert summary.items_inserted == 3
        assert len(repository.items_for_client("client-2")) == 3
        assert len(repository.items_for_client("client-2", dispute_status="sent")) == 0

    def test_failure_rolls_back_everything(self, db, result, monkeypatch):
        """An error part-way through leaves no rows behind and is re-raised"""
        repository = ReportRepository(db)
        calls = {"count": 0}
        original = ReportRepository._item_from_record

        def failing_item(client_id, record, flags):
            calls["count"] += 1
            if calls["count"] == 2:
                raise RuntimeError("disk full")
            return original(client_id, record, flags)

        monkeypatch.setattr(ReportRepository, "_item_from_record", staticmethod(failing_item))

        with pytest.raises(RuntimeError, match="disk full"):
            repository.save("client-1", result)

        assert db.query(CreditItemDB).count() == 0
        assert db.query(CreditScoreDB).count() == 0
        assert db.query(PersonalProfileDB).count() == 0
