from __future__ import annotations

import unittest
from decimal import Decimal

from erpmini.errors import NotFoundError, ValidationError
from erpmini.services.payroll_service import (
    SalaryDraft,
    WorkerProgressDraft,
    save_salary_record,
    save_worker_progress,
    update_salary_record,
    update_worker_progress,
)
from tests.factories import DAY, NEXT_DAY, balance, ledger_count, ledger_rows, make_session_factory, progress, seed, top_sheet


class SalaryTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.seeded = seed(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _draft(self, **overrides) -> SalaryDraft:
        values = dict(
            branch_id=self.seeded.branch_id,
            employee_id=self.seeded.worker_id,
            salary_date=DAY,
            amount=Decimal('12000'),
            payment_account_id=self.seeded.bank_account_id,
        )
        values.update(overrides)
        return SalaryDraft(**values)

    def test_salary_is_booked_as_expense(self) -> None:
        progress_id = save_salary_record(self.db, self._draft())

        self.assertEqual(progress(self.db, self.seeded.worker_id, DAY)['salary'], Decimal('12000'))
        self.assertEqual(top_sheet(self.db, self.seeded.branch_id, DAY)['expense'], Decimal('12000'))
        self.assertEqual(balance(self.db, self.seeded.bank_account_id), Decimal('-12000'))
        rows = ledger_rows(self.db, f'SALARY-{progress_id}')
        self.assertEqual([(row[0].value, row[2]) for row in rows], [('Salary', 'Employee Salary')])

    def test_update_moves_salary_to_new_date(self) -> None:
        progress_id = save_salary_record(self.db, self._draft())
        new_id = update_salary_record(
            self.db,
            salary_id=progress_id,
            draft=self._draft(salary_date=NEXT_DAY, amount=Decimal('11000'), payment_account_id=self.seeded.cash_account_id),
        )

        self.assertNotEqual(new_id, progress_id)
        self.assertEqual(progress(self.db, self.seeded.worker_id, DAY)['salary'], Decimal('0'))
        self.assertEqual(progress(self.db, self.seeded.worker_id, NEXT_DAY)['salary'], Decimal('11000'))
        self.assertEqual(top_sheet(self.db, self.seeded.branch_id, DAY)['expense'], Decimal('0'))
        self.assertEqual(balance(self.db, self.seeded.bank_account_id), Decimal('0'))
        self.assertEqual(balance(self.db, self.seeded.cash_account_id), Decimal('-11000'))
        self.assertEqual(ledger_rows(self.db, f'SALARY-{progress_id}'), [])
        self.assertEqual(ledger_count(self.db), 1)

    def test_update_on_same_day_replaces_amount(self) -> None:
        progress_id = save_salary_record(self.db, self._draft())
        new_id = update_salary_record(self.db, salary_id=progress_id, draft=self._draft(amount=Decimal('9000')))

        self.assertEqual(new_id, progress_id)
        self.assertEqual(progress(self.db, self.seeded.worker_id, DAY)['salary'], Decimal('9000'))
        self.assertEqual(top_sheet(self.db, self.seeded.branch_id, DAY)['expense'], Decimal('9000'))
        self.assertEqual(balance(self.db, self.seeded.bank_account_id), Decimal('-9000'))

    def test_invalid_salary_requests(self) -> None:
        with self.assertRaises(ValidationError):
            save_salary_record(self.db, self._draft(amount=Decimal('0')))
        with self.assertRaises(NotFoundError):
            save_salary_record(self.db, self._draft(payment_account_id=999))
        with self.assertRaises(NotFoundError):
            update_salary_record(self.db, salary_id=999, draft=self._draft())
        self.assertIsNone(progress(self.db, self.seeded.worker_id, DAY))

    def test_unknown_employee_or_fractional_cents_book_nothing(self) -> None:
        with self.assertRaisesRegex(NotFoundError, 'Employee not found'):
            save_salary_record(self.db, self._draft(employee_id=999))
        with self.assertRaisesRegex(NotFoundError, 'Employee not found'):
            save_salary_record(self.db, self._draft(employee_id=self.seeded.second_branch_salesperson_id))
        with self.assertRaisesRegex(ValidationError, 'two decimal places'):
            save_salary_record(self.db, self._draft(amount=Decimal('12000.001')))

        self.assertIsNone(top_sheet(self.db, self.seeded.branch_id, DAY))
        self.assertEqual(balance(self.db, self.seeded.bank_account_id), Decimal('0'))
        self.assertEqual(ledger_count(self.db), 0)


class WorkerProgressTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.seeded = seed(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _draft(self, **overrides) -> WorkerProgressDraft:
        values = dict(
            branch_id=self.seeded.branch_id,
            employee_id=self.seeded.worker_id,
            sheet_date=DAY,
            production_units=12,
            overtime_hours=2,
            advance_payment=Decimal('200'),
        )
        values.update(overrides)
        return WorkerProgressDraft(**values)

    def test_advance_falls_back_to_branch_cash(self) -> None:
        progress_id = save_worker_progress(self.db, self._draft())

        row = progress(self.db, self.seeded.worker_id, DAY)
        self.assertEqual((row['production_units'], row['overtime_hours']), (12, 2))
        self.assertEqual(row['advance_payment'], Decimal('200'))
        self.assertEqual(balance(self.db, self.seeded.cash_account_id), Decimal('-200'))
        self.assertEqual(top_sheet(self.db, self.seeded.branch_id, DAY)['expense'], Decimal('200'))
        self.assertEqual(ledger_rows(self.db, f'ADVANCE-{progress_id}')[0][2], 'Worker advance payment')

    def test_progress_without_advance_touches_no_money(self) -> None:
        save_worker_progress(self.db, self._draft(advance_payment=Decimal('0')))
        self.assertEqual(ledger_count(self.db), 0)
        self.assertIsNone(top_sheet(self.db, self.seeded.branch_id, DAY))

    def test_update_replaces_previous_values(self) -> None:
        progress_id = save_worker_progress(self.db, self._draft())
        update_worker_progress(
            self.db,
            progress_id=progress_id,
            draft=self._draft(
                production_units=5,
                overtime_hours=0,
                advance_payment=Decimal('50'),
                payment_account_id=self.seeded.bank_account_id,
            ),
        )

        row = progress(self.db, self.seeded.worker_id, DAY)
        self.assertEqual((row['production_units'], row['overtime_hours']), (5, 0))
        self.assertEqual(row['advance_payment'], Decimal('50'))
        self.assertEqual(balance(self.db, self.seeded.cash_account_id), Decimal('0'))
        self.assertEqual(balance(self.db, self.seeded.bank_account_id), Decimal('-50'))
        self.assertEqual(top_sheet(self.db, self.seeded.branch_id, DAY)['expense'], Decimal('50'))
        self.assertEqual(ledger_count(self.db), 1)

    def test_negative_values_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            save_worker_progress(self.db, self._draft(production_units=-1))
        with self.assertRaises(ValidationError):
            save_worker_progress(self.db, self._draft(advance_payment=Decimal('-1')))

    def test_unknown_worker_is_not_found(self) -> None:
        with self.assertRaisesRegex(NotFoundError, 'Employee not found'):
            save_worker_progress(self.db, self._draft(employee_id=999))
        self.assertEqual(ledger_count(self.db), 0)
        self.assertIsNone(top_sheet(self.db, self.seeded.branch_id, DAY))


if __name__ == '__main__':
    unittest.main()
