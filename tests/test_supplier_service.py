from __future__ import annotations

import unittest

from erpmini.errors import NotFoundError, ValidationError
from erpmini.services.supplier_service import (
    SupplierDraft,
    add_supplier,
    get_supplier,
    list_suppliers,
    update_supplier,
)
from tests.factories import make_session_factory, seed


class SupplierServiceTests(unittest.TestCase):
    def setUp(self) -> None:
        self.db = make_session_factory()()
        self.seeded = seed(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def test_add_update_and_get(self) -> None:
        supplier_id = add_supplier(
            self.db, SupplierDraft(branch_id=self.seeded.branch_id, name='Button World', mobile='01900000000')
        )
        update_supplier(
            self.db,
            supplier_id=supplier_id,
            draft=SupplierDraft(branch_id=self.seeded.branch_id, name='Button World Ltd'),
        )

        supplier = get_supplier(self.db, supplier_id=supplier_id, branch_id=self.seeded.branch_id)
        self.assertEqual(supplier['name'], 'Button World Ltd')
        self.assertIsNone(supplier['mobile'])

    def test_suppliers_are_branch_scoped(self) -> None:
        with self.assertRaisesRegex(NotFoundError, 'Supplier not found'):
            get_supplier(self.db, supplier_id=self.seeded.supplier_id, branch_id=self.seeded.other_branch_id)
        with self.assertRaises(NotFoundError):
            update_supplier(
                self.db, supplier_id=999, draft=SupplierDraft(branch_id=self.seeded.branch_id, name='Nobody')
            )

    def test_blank_name_is_rejected(self) -> None:
        with self.assertRaises(ValidationError):
            add_supplier(self.db, SupplierDraft(branch_id=self.seeded.branch_id, name=''))

    def test_list_is_sorted_and_searchable(self) -> None:
        add_supplier(self.db, SupplierDraft(branch_id=self.seeded.branch_id, name='Aarong Threads'))

        rows, total = list_suppliers(self.db, branch_id=self.seeded.branch_id)
        self.assertEqual(total, 2)
        self.assertEqual([row['name'] for row in rows], ['Aarong Threads', 'Fabric House'])

        rows, total = list_suppliers(self.db, branch_id=self.seeded.branch_id, search='01800')
        self.assertEqual([row['name'] for row in rows], ['Fabric House'])

        _, total = list_suppliers(self.db, branch_id=self.seeded.other_branch_id)
        self.assertEqual(total, 0)


if __name__ == '__main__':
    unittest.main()
