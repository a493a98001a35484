from __future__ import annotations

import unittest
from decimal import Decimal

from erpmini.errors import ConflictError, NotFoundError, ValidationError
from erpmini.services.customer_service import (
    CustomerDraft,
    add_customer,
    customer_names,
    filter_customers_by_name,
    get_customer,
    list_customers,
    list_customers_with_due,
    update_customer,
)
from erpmini.services.order_service import OrderDraft, OrderItemInput, create_order
from tests.factories import DAY, due, make_session_factory, seed


class CustomerServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.seeded = seed(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _draft(self, **overrides) -> CustomerDraft:
        values = dict(branch_id=self.seeded.branch_id, name='Rupa', mobile='01733333333')
        values.update(overrides)
        return CustomerDraft(**values)

    def test_add_and_get(self) -> None:
        customer_id = add_customer(self.db, self._draft(name='  Rupa  ', address='Mirpur'))

        customer = get_customer(self.db, customer_id=customer_id, branch_id=self.seeded.branch_id)
        self.assertEqual(customer['name'], 'Rupa')
        self.assertEqual(customer['address'], 'Mirpur')
        self.assertEqual(Decimal(str(customer['due_amount'])), Decimal('0'))

    def test_mobile_is_unique_per_branch(self) -> None:
        with self.assertRaisesRegex(ConflictError, 'Duplicate Mobile Number'):
            add_customer(self.db, self._draft(mobile='01711111111'))

        customer_id = add_customer(self.db, self._draft(branch_id=self.seeded.other_branch_id, mobile='01722222222'))
        self.assertIsNotNone(customer_id)

    def test_update_changes_contact_details_but_not_due(self) -> None:
        create_order(
            self.db,
            OrderDraft(
                branch_id=self.seeded.branch_id,
                salesperson_id=self.seeded.salesperson_id,
                customer_id=self.seeded.customer_id,
                order_date=DAY,
                total_amount=Decimal('100'),
                received_amount=Decimal('0'),
                items=[OrderItemInput(product_id=self.seeded.product_ids[0], quantity=1, subtotal=Decimal('100'))],
            ),
        )

        update_customer(
            self.db,
            customer_id=self.seeded.customer_id,
            draft=self._draft(name='Ayesha Siddika', mobile='01711111111', address='Dhanmondi'),
        )

        customer = get_customer(self.db, customer_id=self.seeded.customer_id, branch_id=self.seeded.branch_id)
        self.assertEqual((customer['name'], customer['address']), ('Ayesha Siddika', 'Dhanmondi'))
        self.assertEqual(due(self.db, self.seeded.customer_id), Decimal('100'))

    def test_update_to_taken_mobile_is_a_conflict(self) -> None:
        with self.assertRaises(ConflictError):
            update_customer(
                self.db, customer_id=self.seeded.customer_id, draft=self._draft(name='Ayesha', mobile='01722222222')
            )
        customer = get_customer(self.db, customer_id=self.seeded.customer_id, branch_id=self.seeded.branch_id)
        self.assertEqual(customer['mobile'], '01711111111')

    def test_customers_are_branch_scoped(self) -> None:
        with self.assertRaises(NotFoundError):
            get_customer(self.db, customer_id=self.seeded.second_branch_customer_id, branch_id=self.seeded.branch_id)
        with self.assertRaises(NotFoundError):
            update_customer(self.db, customer_id=999, draft=self._draft())

    def test_blank_fields_are_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            add_customer(self.db, self._draft(name=' '))
        with self.assertRaises(ValidationError):
            add_customer(self.db, self._draft(mobile=''))

    def test_list_search_names_and_filter(self) -> None:
        add_customer(self.db, self._draft())

        rows, total = list_customers(self.db, branch_id=self.seeded.branch_id)
        self.assertEqual(total, 3)
        self.assertEqual(rows[0]['name'], 'Rupa')

        rows, total = list_customers(self.db, branch_id=self.seeded.branch_id, search='0172')
        self.assertEqual((total, rows[0]['name']), (1, 'Farhan'))

        rows, total = list_customers(self.db, branch_id=self.seeded.branch_id, page=2, limit=2)
        self.assertEqual((total, len(rows)), (3, 1))

        names = customer_names(self.db, branch_id=self.seeded.branch_id)
        self.assertEqual([row['name'] for row in names], ['Ayesha', 'Farhan', 'Rupa'])
        matches = filter_customers_by_name(self.db, branch_id=self.seeded.branch_id, name='YES')
        self.assertEqual([row['name'] for row in matches], ['Ayesha'])

    def test_with_due_lists_only_positive_balances(self) -> None:
        self.assertEqual(list_customers_with_due(self.db, branch_id=self.seeded.branch_id), [])
        for customer_id, total in ((self.seeded.customer_id, '50'), (self.seeded.other_customer_id, '80')):
            create_order(
                self.db,
                OrderDraft(
                    branch_id=self.seeded.branch_id,
                    salesperson_id=self.seeded.salesperson_id,
                    customer_id=customer_id,
                    order_date=DAY,
                    total_amount=Decimal(total),
                    received_amount=Decimal('0'),
                    items=[OrderItemInput(product_id=self.seeded.product_ids[0], quantity=1, subtotal=Decimal(total))],
                ),
            )

        rows = list_customers_with_due(self.db, branch_id=self.seeded.branch_id)
        self.assertEqual([row['name'] for row in rows], ['Farhan', 'Ayesha'])


if __name__ == '__main__':
    unittest.main()
