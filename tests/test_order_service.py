from __future__ import annotations

import unittest
from decimal import Decimal

from sqlalchemy import func, select

from erpmini.errors import ConflictError, NotFoundError, ValidationError
from erpmini.models import Order, OrderStatus
from erpmini.services.order_service import (
    DeliveryDraft,
    OrderDraft,
    OrderItemInput,
    create_order,
    get_order_detail,
    list_orders,
    record_delivery,
    update_order,
)
from erpmini.services.ledger_service import account_ledger_balance
from tests.factories import (
    DAY,
    NEXT_DAY,
    balance,
    due,
    ledger_rows,
    make_session_factory,
    progress,
    seed,
    snapshot,
    top_sheet,
)


class OrderServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.seeded = seed(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def _draft(self, **overrides) -> OrderDraft:
        values = dict(
            branch_id=self.seeded.branch_id,
            salesperson_id=self.seeded.salesperson_id,
            customer_id=self.seeded.customer_id,
            order_date=DAY,
            total_amount=Decimal('100'),
            received_amount=Decimal('40'),
            items=[OrderItemInput(product_id=self.seeded.product_ids[0], quantity=2, subtotal=Decimal('100'))],
            payment_account_id=self.seeded.cash_account_id,
            memo_no='0315ABCD',
        )
        values.update(overrides)
        return OrderDraft(**values)

    def _delivery(self, **overrides) -> DeliveryDraft:
        values = dict(
            branch_id=self.seeded.branch_id,
            delivery_date=DAY,
            quantity=2,
            amount=Decimal('60'),
            payment_account_id=self.seeded.cash_account_id,
        )
        values.update(overrides)
        return DeliveryDraft(**values)

    def _order_state(self, order_id: int) -> tuple:
        return self.db.execute(
            select(Order.status, Order.delivered_items, Order.received_amount).where(Order.id == order_id)
        ).one()

    def test_create_order_with_advance_updates_every_aggregate(self) -> None:
        order_id = create_order(self.db, self._draft())

        self.assertEqual(self._order_state(order_id)[0], OrderStatus.PENDING)
        sheet = top_sheet(self.db, self.seeded.branch_id, DAY)
        self.assertEqual(sheet['cash'], Decimal('40'))
        self.assertEqual(sheet['bank'], Decimal('0'))
        self.assertEqual(sheet['order_count'], 2)
        self.assertEqual(due(self.db, self.seeded.customer_id), Decimal('60'))
        self.assertEqual(balance(self.db, self.seeded.cash_account_id), Decimal('40'))
        self.assertEqual(progress(self.db, self.seeded.salesperson_id, DAY)['sale_amount'], Decimal('100'))
        self.assertEqual(progress(self.db, self.seeded.salesperson_id, DAY)['order_count'], 2)

        rows = ledger_rows(self.db, 'ORDER-0315ABCD')
        self.assertEqual(len(rows), 1)
        self.assertEqual(rows[0][0].value, 'Advance Payment')
        self.assertEqual(Decimal(str(rows[0][1])), Decimal('40'))

    def test_bank_advance_goes_to_bank_column(self) -> None:
        create_order(self.db, self._draft(payment_account_id=self.seeded.bank_account_id))
        sheet = top_sheet(self.db, self.seeded.branch_id, DAY)
        self.assertEqual(sheet['bank'], Decimal('40'))
        self.assertEqual(sheet['cash'], Decimal('0'))
        self.assertEqual(balance(self.db, self.seeded.bank_account_id), Decimal('40'))

    def test_order_without_advance_writes_no_ledger_row(self) -> None:
        create_order(self.db, self._draft(received_amount=Decimal('0'), payment_account_id=None))
        self.assertEqual(ledger_rows(self.db, 'ORDER-0315ABCD'), [])
        self.assertEqual(due(self.db, self.seeded.customer_id), Decimal('100'))

    def test_full_delivery_settles_order(self) -> None:
        order_id = create_order(self.db, self._draft())

        status = record_delivery(self.db, order_id=order_id, draft=self._delivery())

        self.assertEqual(status, OrderStatus.DELIVERED)
        self.assertEqual(self._order_state(order_id)[:2], (OrderStatus.DELIVERED, 2))
        self.assertEqual(due(self.db, self.seeded.customer_id), Decimal('0'))
        self.assertEqual(balance(self.db, self.seeded.cash_account_id), Decimal('100'))
        sheet = top_sheet(self.db, self.seeded.branch_id, DAY)
        self.assertEqual(sheet['delivery'], 2)
        self.assertEqual(sheet['cash'], Decimal('100'))
        notes = [row[2] for row in ledger_rows(self.db, 'ORDER-0315ABCD')]
        self.assertEqual(notes, ['Advance payment from customer', 'Payment received upon delivery'])
        self.assertEqual(
            account_ledger_balance(self.db, account_id=self.seeded.cash_account_id),
            balance(self.db, self.seeded.cash_account_id),
        )

    def test_partial_delivery_then_completion(self) -> None:
        order_id = create_order(self.db, self._draft())

        first = record_delivery(self.db, order_id=order_id, draft=self._delivery(quantity=1, amount=Decimal('0')))
        second = record_delivery(self.db, order_id=order_id, draft=self._delivery(quantity=1, delivery_date=NEXT_DAY))

        self.assertEqual(first, OrderStatus.PARTIAL)
        self.assertEqual(second, OrderStatus.DELIVERED)
        self.assertEqual(top_sheet(self.db, self.seeded.branch_id, DAY)['delivery'], 1)
        self.assertEqual(top_sheet(self.db, self.seeded.branch_id, NEXT_DAY)['cash'], Decimal('60'))

    def test_over_delivery_is_rejected_without_side_effects(self) -> None:
        order_id = create_order(self.db, self._draft())
        before = snapshot(self.seeded)
        order_before = self._order_state(order_id)

        with self.assertRaisesRegex(ValidationError, 'cannot exceed due amount'):
            record_delivery(self.db, order_id=order_id, draft=self._delivery(amount=Decimal('60.01')))
        with self.assertRaisesRegex(ValidationError, 'cannot exceed remaining quantity'):
            record_delivery(self.db, order_id=order_id, draft=self._delivery(quantity=3, amount=Decimal('0')))
        with self.assertRaises(ValidationError):
            record_delivery(self.db, order_id=order_id, draft=self._delivery(quantity=0, amount=Decimal('0')))

        self.assertEqual(snapshot(self.seeded), before)
        self.assertEqual(self._order_state(order_id), order_before)

    def test_delivered_order_cannot_be_delivered_again(self) -> None:
        order_id = create_order(self.db, self._draft())
        record_delivery(self.db, order_id=order_id, draft=self._delivery())
        with self.assertRaises(ValidationError):
            record_delivery(self.db, order_id=order_id, draft=self._delivery(quantity=0, amount=Decimal('1')))

    def test_update_and_update_back_restores_aggregates(self) -> None:
        order_id = create_order(self.db, self._draft())
        original = snapshot(self.seeded)

        update_order(
            self.db,
            order_id=order_id,
            draft=self._draft(
                customer_id=self.seeded.other_customer_id,
                total_amount=Decimal('250'),
                received_amount=Decimal('90'),
                payment_account_id=self.seeded.bank_account_id,
                items=[
                    OrderItemInput(product_id=self.seeded.product_ids[1], quantity=3, subtotal=Decimal('150')),
                    OrderItemInput(product_id=self.seeded.product_ids[2], quantity=1, subtotal=Decimal('100')),
                ],
            ),
        )
        changed = snapshot(self.seeded)
        self.assertEqual(changed['top_sheet']['order_count'], 4)
        self.assertEqual(changed['top_sheet']['cash'], Decimal('0'))
        self.assertEqual(changed['top_sheet']['bank'], Decimal('90'))
        self.assertEqual(changed['due'], Decimal('0'))
        self.assertEqual(changed['other_due'], Decimal('160'))
        self.assertEqual(changed['cash'], Decimal('0'))
        self.assertEqual(changed['bank'], Decimal('90'))
        self.assertEqual(changed['ledger_count'], 1)

        update_order(self.db, order_id=order_id, draft=self._draft())
        self.assertEqual(snapshot(self.seeded), original)
        self.assertEqual(len(get_order_detail(self.db, order_id=order_id, branch_id=self.seeded.branch_id)['items']), 1)

    def test_update_moving_order_date_moves_aggregates(self) -> None:
        order_id = create_order(self.db, self._draft())
        update_order(self.db, order_id=order_id, draft=self._draft(order_date=NEXT_DAY))

        self.assertEqual(top_sheet(self.db, self.seeded.branch_id, DAY)['order_count'], 0)
        self.assertEqual(top_sheet(self.db, self.seeded.branch_id, DAY)['cash'], Decimal('0'))
        self.assertEqual(top_sheet(self.db, self.seeded.branch_id, NEXT_DAY)['order_count'], 2)
        self.assertEqual(progress(self.db, self.seeded.salesperson_id, NEXT_DAY)['sale_amount'], Decimal('100'))

    def test_only_pending_orders_can_be_updated(self) -> None:
        order_id = create_order(self.db, self._draft())
        record_delivery(self.db, order_id=order_id, draft=self._delivery(quantity=1, amount=Decimal('0')))
        with self.assertRaisesRegex(ValidationError, 'only pending orders'):
            update_order(self.db, order_id=order_id, draft=self._draft())

    def test_duplicate_memo_in_branch_is_a_conflict(self) -> None:
        first_id = create_order(self.db, self._draft())
        before = snapshot(self.seeded)

        with self.assertRaises(ConflictError):
            create_order(self.db, self._draft(customer_id=self.seeded.other_customer_id))

        self.assertEqual(snapshot(self.seeded), before)
        self.assertEqual(self._order_state(first_id)[0], OrderStatus.PENDING)

    def test_same_memo_in_another_branch_is_allowed(self) -> None:
        create_order(self.db, self._draft())
        other_id = create_order(
            self.db,
            self._draft(
                branch_id=self.seeded.other_branch_id,
                salesperson_id=self.seeded.second_branch_salesperson_id,
                customer_id=self.seeded.second_branch_customer_id,
                received_amount=Decimal('0'),
                payment_account_id=None,
            ),
        )
        self.assertIsNotNone(other_id)

    def test_invalid_drafts_are_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            create_order(self.db, self._draft(items=[]))
        with self.assertRaises(ValidationError):
            create_order(self.db, self._draft(received_amount=Decimal('120')))
        with self.assertRaises(ValidationError):
            create_order(self.db, self._draft(payment_account_id=None))
        with self.assertRaises(NotFoundError):
            update_order(self.db, order_id=999, draft=self._draft())

    def test_out_of_bounds_received_amount_changes_nothing(self) -> None:
        before = snapshot(self.seeded)

        with self.assertRaisesRegex(ValidationError, 'cannot be negative'):
            create_order(self.db, self._draft(received_amount=Decimal('-1')))
        with self.assertRaisesRegex(ValidationError, 'cannot exceed total'):
            create_order(self.db, self._draft(received_amount=Decimal('100.01')))

        self.assertEqual(snapshot(self.seeded), before)
        self.assertEqual(self.db.execute(select(func.count(Order.id))).scalar_one(), 0)

    def test_amounts_finer_than_cents_are_rejected(self) -> None:
        before = snapshot(self.seeded)

        with self.assertRaisesRegex(ValidationError, 'two decimal places'):
            create_order(self.db, self._draft(received_amount=Decimal('40.005')))
        with self.assertRaisesRegex(ValidationError, 'two decimal places'):
            create_order(
                self.db,
                self._draft(
                    items=[OrderItemInput(product_id=self.seeded.product_ids[0], quantity=2, subtotal=Decimal('99.999'))]
                ),
            )

        order_id = create_order(self.db, self._draft(received_amount=Decimal('0'), payment_account_id=None))
        with self.assertRaisesRegex(ValidationError, 'two decimal places'):
            record_delivery(self.db, order_id=order_id, draft=self._delivery(amount=Decimal('0.001')))
        self.assertEqual(snapshot(self.seeded)['cash'], before['cash'])

    def test_unknown_salesperson_customer_or_product_is_not_found(self) -> None:
        before = snapshot(self.seeded)

        with self.assertRaisesRegex(NotFoundError, 'Employee not found'):
            create_order(self.db, self._draft(salesperson_id=999))
        with self.assertRaisesRegex(NotFoundError, 'Customer not found'):
            create_order(self.db, self._draft(customer_id=999))
        with self.assertRaisesRegex(NotFoundError, 'Product 999 not found'):
            create_order(
                self.db, self._draft(items=[OrderItemInput(product_id=999, quantity=1, subtotal=Decimal('100'))])
            )

        self.assertEqual(snapshot(self.seeded), before)
        self.assertEqual(self.db.execute(select(func.count(Order.id))).scalar_one(), 0)

    def test_parties_from_another_branch_are_not_found(self) -> None:
        with self.assertRaisesRegex(NotFoundError, 'Customer not found'):
            create_order(self.db, self._draft(customer_id=self.seeded.second_branch_customer_id))
        with self.assertRaisesRegex(NotFoundError, 'Employee not found'):
            create_order(self.db, self._draft(salesperson_id=self.seeded.second_branch_salesperson_id))

    def test_update_to_unknown_customer_keeps_original_effects(self) -> None:
        order_id = create_order(self.db, self._draft())
        before = snapshot(self.seeded)

        with self.assertRaisesRegex(NotFoundError, 'Customer not found'):
            update_order(self.db, order_id=order_id, draft=self._draft(customer_id=999))

        self.assertEqual(snapshot(self.seeded), before)
        self.assertEqual(self._order_state(order_id)[0], OrderStatus.PENDING)

    def test_unknown_delivery_employee_is_not_found(self) -> None:
        order_id = create_order(self.db, self._draft())
        before = snapshot(self.seeded)

        with self.assertRaisesRegex(NotFoundError, 'Employee not found'):
            record_delivery(self.db, order_id=order_id, draft=self._delivery(delivered_by=999))

        self.assertEqual(snapshot(self.seeded), before)
        self.assertEqual(self._order_state(order_id)[0], OrderStatus.PENDING)

    def test_payment_account_from_other_branch_is_not_found(self) -> None:
        with self.assertRaisesRegex(NotFoundError, 'Payment account not found'):
            create_order(
                self.db,
                self._draft(
                    branch_id=self.seeded.other_branch_id,
                    salesperson_id=self.seeded.second_branch_salesperson_id,
                    customer_id=self.seeded.second_branch_customer_id,
                ),
            )
        self.assertIsNone(top_sheet(self.db, self.seeded.other_branch_id, DAY))

    def test_list_and_detail(self) -> None:
        order_id = create_order(self.db, self._draft())
        create_order(self.db, self._draft(memo_no='0315WXYZ', customer_id=self.seeded.other_customer_id))

        rows, total = list_orders(self.db, branch_id=self.seeded.branch_id)
        self.assertEqual(total, 2)
        rows, total = list_orders(self.db, branch_id=self.seeded.branch_id, search='Farhan')
        self.assertEqual((total, rows[0]['memo_no']), (1, '0315WXYZ'))
        rows, total = list_orders(self.db, branch_id=self.seeded.branch_id, status='delivered')
        self.assertEqual(total, 0)
        with self.assertRaises(ValidationError):
            list_orders(self.db, branch_id=self.seeded.branch_id, status='shipped')

        detail = get_order_detail(self.db, order_id=order_id, branch_id=self.seeded.branch_id)
        self.assertEqual(detail['customer_name'], 'Ayesha')
        self.assertEqual(detail['salesperson_name'], 'Rahim')
        self.assertEqual(detail['items'][0]['product_name'], 'Kurti')
        self.assertEqual(detail['order_transactions'][0]['payment_account_name'], 'Cash Box')
        with self.assertRaises(NotFoundError):
            get_order_detail(self.db, order_id=order_id, branch_id=self.seeded.other_branch_id)


if __name__ == '__main__':
    unittest.main()
