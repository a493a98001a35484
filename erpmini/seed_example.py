from decimal import Decimal

from sqlalchemy import select

from erpmini.db import SessionLocal, init_db
from erpmini.models import (
    Account,
    AccountType,
    Branch,
    Customer,
    Employee,
    EmployeeRole,
    Product,
    Supplier,
)

DEMO_PRODUCTS = ['Salwar Kameez', 'Kurti', 'Blouse', 'Lehenga']


def seed() -> None:
    init_db()
    with SessionLocal() as db:
        branch = db.execute(select(Branch).where(Branch.name == 'Main Branch')).scalar_one_or_none()
        if not branch:
            branch = Branch(name='Main Branch', active=True)
            db.add(branch)
            db.flush()

        existing_accounts = db.execute(select(Account).where(Account.branch_id == branch.id)).scalars().all()
        if not existing_accounts:
            db.add(Account(name='Cash Box', type=AccountType.CASH, current_balance=Decimal('0'), branch_id=branch.id))
            db.add(Account(name='City Bank', type=AccountType.BANK, current_balance=Decimal('0'), branch_id=branch.id))

        staff = {
            'Rahim Uddin': (EmployeeRole.SALESPERSON, Decimal('15000')),
            'Karim Mia': (EmployeeRole.WORKER, Decimal('12000')),
            'Nasima Akter': (EmployeeRole.MANAGER, Decimal('25000')),
        }
        for name, (role, base_salary) in staff.items():
            employee = db.execute(select(Employee).where(Employee.name == name)).scalar_one_or_none()
            if not employee:
                db.add(Employee(name=name, role=role, base_salary=base_salary, branch_id=branch.id, active=True))

        customer = db.execute(select(Customer).where(Customer.mobile == '01700000000')).scalar_one_or_none()
        if not customer:
            db.add(Customer(name='Walk-in Customer', mobile='01700000000', due_amount=Decimal('0'), branch_id=branch.id))

        supplier = db.execute(select(Supplier).where(Supplier.name == 'Fabric House')).scalar_one_or_none()
        if not supplier:
            db.add(Supplier(name='Fabric House', mobile='01800000000', branch_id=branch.id))

        for product_name in DEMO_PRODUCTS:
            product = db.execute(select(Product).where(Product.product_name == product_name)).scalar_one_or_none()
            if not product:
                db.add(Product(product_name=product_name, quantity=20))

        db.commit()


if __name__ == '__main__':
    seed()
    print('Seed data inserted/verified.')
