"""
Credit Report Parser - Record Builder

Merges parsed accounts that describe the same tradeline and expands each
account into exactly one AccountRecord per bureau.
"""
from __future__ import annotations
import logging
from typing import Dict, List, Optional, Set, Tuple

from ...models.ssot import AccountRecord, BureauFieldSet, BUREAU_ORDER, ParsedAccount
from .field_normalizer import FieldNormalizer

logger = logging.getLogger(__name__)


class RecordBuilder:
    """Turn ParsedAccounts into per-bureau AccountRecords."""

    def __init__(self, normalizer: Optional[FieldNormalizer] = None):
        self.normalizer = normalizer or FieldNormalizer()

    def _identity(self, account: ParsedAccount) -> Tuple[str, Optional[str]]:
        return (
            self.normalizer.normalize_account_name(account.account_name).upper(),
            self.normalizer.normalize_account_number(account.account_number),
        )

    def merge(self, accounts: List[ParsedAccount]) -> List[ParsedAccount]:
        """
        Fold accounts with the same name and account number together.

        An account without a number merges into a same-named account that has
        one. Fields already present are never overwritten.
        """
        merged: List[ParsedAccount] = []
        for account in accounts:
            name_key, number_key = self._identity(account)
            target = None
            for existing in merged:
                existing_name, existing_number = self._identity(existing)
                if existing_name == name_key and (
                    existing_number == number_key or existing_number is None or number_key is None
                ):
                    target = existing
                    break

            if target is None:
                merged.append(account)
                continue

            logger.debug(f"Merging repeated account '{account.account_name}'")
            for bureau, field_set in account.bureau_fields.items():
                if bureau in target.bureau_fields:
                    target.bureau_fields[bureau].fill_missing(field_set)
                else:
                    target.bureau_fields[bureau] = field_set
            if account.shared:
                target.shared = True
                if target.shared_fields is None:
                    target.shared_fields = account.shared_fields
                elif account.shared_fields is not None:
                    target.shared_fields.fill_missing(account.shared_fields)
            for attr in ("account_number", "account_type", "date_opened", "original_creditor"):
                if getattr(target, attr) is None:
                    setattr(target, attr, getattr(account, attr))
        return merged

    def build(self, accounts: List[ParsedAccount]) -> List[AccountRecord]:
        """Three records per account, in TransUnion / Experian / Equifax order."""
        records: List[AccountRecord] = []
        seen: Set[Tuple[str, str, Optional[str]]] = set()

        for account in self.merge(accounts):
            normalized_number = self.normalizer.normalize_account_number(account.account_number)
            for bureau in BUREAU_ORDER:
                field_set = self._fields_for(account, bureau)
                if field_set.date_opened is None and account.date_opened is not None:
                    field_set.date_opened = account.date_opened

                record = AccountRecord(
                    bureau=bureau,
                    account_name=account.account_name,
                    account_number=account.account_number,
                    normalized_account_number=normalized_number,
                    account_type=account.account_type,
                    original_creditor=account.original_creditor,
                    fields=field_set,
                )
                if record.uniqueness_key in seen:
                    logger.debug(f"Dropping duplicate record {record.uniqueness_key}")
                    continue
                seen.add(record.uniqueness_key)
                records.append(record)

        logger.info(f"Built {len(records)} account records")
        return records

    @staticmethod
    def _fields_for(account: ParsedAccount, bureau) -> BureauFieldSet:
        explicit = account.bureau_fields.get(bureau)
        if explicit is not None and not explicit.is_empty():
            return explicit.copy()
        if account.shared and account.shared_fields is not None:
            return account.shared_fields.copy()
        return BureauFieldSet()
