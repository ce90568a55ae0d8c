"""
Credit Report Parser - Report Repository

Persists one ParseResult inside a single transaction: the score row, one
profile per bureau and one credit item per (account, bureau). Either all of
it commits or none of it does.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from ...models.db_models import ClientDB, CreditItemDB, CreditScoreDB, PersonalProfileDB
from ...models.ssot import AccountRecord, DisputeStatus, ParseResult, PersonalProfileVariant

logger = logging.getLogger(__name__)


@dataclass
class SaveSummary:
    score_saved: bool = False
    profiles_saved: int = 0
    items_inserted: int = 0
    items_skipped: int = 0


class ReportRepository:
    """Write parse results for a client."""

    def __init__(self, db: Session):
        self.db = db

    def get_or_create_client(self, client_id: str, name: Optional[str] = None) -> ClientDB:
        client = self.db.query(ClientDB).filter(ClientDB.id == client_id).first()
        if client is None:
            client = ClientDB(id=client_id, name=name)
            self.db.add(client)
            self.db.flush()
        return client

    def save(self, client_id: str, result: ParseResult) -> SaveSummary:
        """
        Save everything in `result` for the client.

        Existing credit items (same bureau and account name, with the same
        raw account number or the same normalized identifier) are left
        untouched. Any error rolls the whole report back and is re-raised.
        """
        summary = SaveSummary()
        try:
            self.get_or_create_client(client_id)

            if result.scores is not None:
                self.db.add(CreditScoreDB(
                    client_id=client_id,
                    transunion=result.scores.transunion,
                    experian=result.scores.experian,
                    equifax=result.scores.equifax,
                    report_date=result.scores.report_date,
                    reference_number=result.scores.reference_number,
                ))
                summary.score_saved = True

            for profile in result.profiles:
                self._upsert_profile(client_id, profile)
                summary.profiles_saved += 1

            flags = self._flags_by_account(result)
            for record in result.accounts:
                if self._item_exists(client_id, record):
                    summary.items_skipped += 1
                    continue
                self.db.add(self._item_from_record(client_id, record, flags))
                # Flush so a later record in the same report sees this one
                self.db.flush()
                summary.items_inserted += 1

            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.error(f"Saving report for client {client_id} failed; rolled back", exc_info=True)
            raise

        logger.info(
            f"Saved report for client {client_id}: {summary.items_inserted} items inserted, "
            f"{summary.items_skipped} already present, {summary.profiles_saved} profiles"
        )
        return summary

    # =========================================================================
    # CREDIT ITEMS
    # =========================================================================

    def _item_exists(self, client_id: str, record: AccountRecord) -> bool:
        existing = self.db.query(CreditItemDB).filter(
            CreditItemDB.client_id == client_id,
            CreditItemDB.bureau == record.bureau.value,
            CreditItemDB.account_name == record.account_name,
        ).all()
        for item in existing:
            if item.account_number == record.account_number:
                return True
            if (
                record.normalized_account_number
                and item.account_number_last4 == record.normalized_account_number
            ):
                return True
        return False

    @staticmethod
    def _flags_by_account(result: ParseResult) -> Dict[str, List[str]]:
        flags: Dict[str, List[str]] = {}
        for discrepancy in result.discrepancies:
            key = f"{discrepancy.account_name}|{discrepancy.account_number or ''}"
            flags[key] = [flag.value for flag in discrepancy.flags]
        return flags

    @staticmethod
    def _item_from_record(client_id: str, record: AccountRecord, flags: Dict[str, List[str]]) -> CreditItemDB:
        fields = record.fields
        return CreditItemDB(
            client_id=client_id,
            bureau=record.bureau.value,
            account_name=record.account_name,
            account_number=record.account_number,
            account_number_last4=record.normalized_account_number,
            account_type=record.account_type,
            original_creditor=record.original_creditor,
            balance=fields.balance,
            high_limit=fields.high_limit,
            monthly_pay=fields.monthly_pay,
            past_due=fields.past_due,
            status=fields.status,
            payment_status=fields.payment_status,
            date_opened=fields.date_opened,
            date_last_active=fields.date_last_active,
            date_reported=fields.date_reported,
            payment_history=fields.payment_history,
            terms=fields.terms,
            reason=fields.reason,
            discrepancy_flags=flags.get(f"{record.account_name}|{record.account_number or ''}", []),
            dispute_status=DisputeStatus.PENDING.value,
        )

    # =========================================================================
    # PROFILES
    # =========================================================================

    def _upsert_profile(self, client_id: str, profile: PersonalProfileVariant) -> PersonalProfileDB:
        row = self.db.query(PersonalProfileDB).filter(
            PersonalProfileDB.client_id == client_id,
            PersonalProfileDB.bureau == profile.bureau.value,
        ).first()
        if row is None:
            row = PersonalProfileDB(client_id=client_id, bureau=profile.bureau.value)
            self.db.add(row)

        for attr in ("name", "date_of_birth", "current_address", "previous_address", "employer", "date_reported"):
            value = getattr(profile, attr)
            if value is not None:
                setattr(row, attr, value)
        return row

    def items_for_client(self, client_id: str, dispute_status: Optional[str] = None) -> List[CreditItemDB]:
        query = self.db.query(CreditItemDB).filter(CreditItemDB.client_id == client_id)
        if dispute_status:
            query = query.filter(CreditItemDB.dispute_status == dispute_status)
        return query.order_by(CreditItemDB.created_at).all()
