from __future__ import annotations

import re
import unittest
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from erpmini.errors import ValidationError
from erpmini.models import EntityType, TransactionType
from erpmini.services.ledger_service import (
    EntityRef,
    LedgerEntry,
    append_transaction,
    delete_transactions_by_memo,
    generate_memo_no,
    is_unique_violation,
    list_transactions,
    transaction_summary,
)
from tests.factories import DAY, ledger_count, make_session_factory, seed


class MemoNumberTests(unittest.TestCase):
    def test_memo_is_month_day_plus_four_characters(self) -> None:
        memo = generate_memo_no(date(2024, 7, 4))
        self.assertRegex(memo, r'^0704[A-Z0-9]{4}$')

    def test_memo_defaults_to_today(self) -> None:
        self.assertTrue(re.fullmatch(r'\d{4}[A-Z0-9]{4}', generate_memo_no()))


class UniqueViolationTests(unittest.TestCase):
    def _exc(self, message: str):
        return SimpleNamespace(orig=Exception(message))

    def test_matches_postgres_constraint_name(self) -> None:
        exc = self._exc('duplicate key value violates unique constraint "orders_memo_no_branch_id_key"')
        self.assertTrue(is_unique_violation(exc, 'orders_memo_no_branch_id_key', 'orders'))

    def test_matches_sqlite_column_message(self) -> None:
        exc = self._exc('UNIQUE constraint failed: orders.memo_no, orders.branch_id')
        self.assertTrue(is_unique_violation(exc, 'orders_memo_no_branch_id_key', 'orders'))

    def test_other_constraints_do_not_match(self) -> None:
        exc = self._exc('UNIQUE constraint failed: sales.memo_no, sales.branch_id')
        self.assertFalse(is_unique_violation(exc, 'orders_memo_no_branch_id_key', 'orders'))
        self.assertFalse(is_unique_violation(self._exc('NOT NULL constraint failed'), 'orders_memo_no_branch_id_key'))

    def test_matches_other_unique_columns(self) -> None:
        exc = self._exc('UNIQUE constraint failed: customers.mobile, customers.branch_id')
        self.assertTrue(is_unique_violation(exc, 'customers_mobile_branch_id_key', 'customers', 'mobile'))
        self.assertFalse(is_unique_violation(exc, 'customers_mobile_branch_id_key', 'customers'))


class LedgerServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.seeded = seed(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _entry(self, **overrides) -> LedgerEntry:
        values = dict(
            transaction_date=DAY,
            branch_id=self.seeded.branch_id,
            source=EntityRef.customer(self.seeded.customer_id),
            target=EntityRef.account(self.seeded.cash_account_id),
            amount=Decimal('40'),
            transaction_type=TransactionType.PAYMENT,
            memo_no='ORDER-0315ABCD',
        )
        values.update(overrides)
        return LedgerEntry(**values)

    def test_entity_ref_constructors(self) -> None:
        self.assertEqual(EntityRef.account(1).type, EntityType.ACCOUNT)
        self.assertEqual(EntityRef.customer(2).type, EntityType.CUSTOMER)
        self.assertEqual(EntityRef.employee(3).type, EntityType.EMPLOYEE)
        self.assertEqual(EntityRef.supplier(4), EntityRef(EntityType.SUPPLIER, 4))

    def test_append_generates_memo_when_missing(self) -> None:
        transaction_id = append_transaction(self.db, self._entry(memo_no=None))
        self.db.commit()
        rows, total = list_transactions(self.db, branch_id=self.seeded.branch_id, start_date=DAY, end_date=DAY)
        self.assertEqual(total, 1)
        self.assertEqual(rows[0]['transaction_id'], transaction_id)
        self.assertRegex(rows[0]['memo_no'], r'^0315[A-Z0-9]{4}$')
        self.assertEqual(rows[0]['from_account_name'], 'Ayesha')
        self.assertEqual(rows[0]['to_account_name'], 'Cash Box')

    def test_append_rejects_non_positive_amount(self) -> None:
        with self.assertRaises(ValidationError):
            append_transaction(self.db, self._entry(amount=Decimal('0')))

    def test_delete_by_memo_is_idempotent_and_branch_scoped(self) -> None:
        append_transaction(self.db, self._entry())
        append_transaction(self.db, self._entry(transaction_type=TransactionType.ADVANCE_PAYMENT))
        append_transaction(self.db, self._entry(branch_id=self.seeded.other_branch_id))

        removed = delete_transactions_by_memo(
            self.db,
            memo_no='ORDER-0315ABCD',
            branch_id=self.seeded.branch_id,
            transaction_type=TransactionType.ADVANCE_PAYMENT,
        )
        self.assertEqual(removed, 1)
        self.assertEqual(ledger_count(self.db), 2)

        self.assertEqual(delete_transactions_by_memo(self.db, memo_no='ORDER-0315ABCD', branch_id=self.seeded.branch_id), 1)
        self.assertEqual(delete_transactions_by_memo(self.db, memo_no='ORDER-0315ABCD', branch_id=self.seeded.branch_id), 0)
        self.assertEqual(ledger_count(self.db), 1)

    def test_summary_totals_by_type(self) -> None:
        append_transaction(self.db, self._entry(amount=Decimal('40')))
        append_transaction(self.db, self._entry(amount=Decimal('60')))
        append_transaction(
            self.db,
            self._entry(
                amount=Decimal('500'),
                transaction_type=TransactionType.SALARY,
                source=EntityRef.account(self.seeded.cash_account_id),
                target=EntityRef.employee(self.seeded.worker_id),
            ),
        )
        self.db.commit()

        summary = transaction_summary(self.db, branch_id=self.seeded.branch_id, start_date=DAY, end_date=DAY)
        self.assertEqual(summary['Payment'], Decimal('100'))
        self.assertEqual(summary['Salary'], Decimal('500'))
        self.assertEqual(summary['Refund'], Decimal('0'))

        rows, total = list_transactions(
            self.db,
            branch_id=self.seeded.branch_id,
            start_date=DAY,
            end_date=DAY,
            transaction_type=TransactionType.SALARY,
        )
        self.assertEqual(total, 1)
        self.assertEqual(rows[0]['to_account_name'], 'Karim')


if __name__ == '__main__':
    unittest.main()
