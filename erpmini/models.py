from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from enum import Enum

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    Numeric,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# BIGSERIAL on Postgres; SQLite only autoincrements INTEGER PRIMARY KEY.
Id = BigInteger().with_variant(Integer, 'sqlite')
Money = Numeric(14, 2)

ZERO = Decimal('0')


class Base(DeclarativeBase):
    pass


def _values(enum_cls: type[Enum]) -> list[str]:
    return [member.value for member in enum_cls]


class EmployeeRole(str, Enum):
    CHAIRMAN = 'chairman'
    MANAGER = 'manager'
    SALESPERSON = 'salesperson'
    WORKER = 'worker'


class AccountType(str, Enum):
    CASH = 'cash'
    BANK = 'bank'


class EntityType(str, Enum):
    ACCOUNT = 'accounts'
    CUSTOMER = 'customers'
    EMPLOYEE = 'employees'
    SUPPLIER = 'suppliers'


class TransactionType(str, Enum):
    ADVANCE_PAYMENT = 'Advance Payment'
    PAYMENT = 'Payment'
    REFUND = 'Refund'
    ADJUSTMENT = 'Adjustment'
    SALARY = 'Salary'


class OrderStatus(str, Enum):
    PENDING = 'pending'
    PARTIAL = 'partial'
    DELIVERED = 'delivered'
    CHECKOUT = 'checkout'
    CANCELLED = 'cancelled'


class SaleStatus(str, Enum):
    DELIVERED = 'delivered'
    RETURNED = 'returned'


class Branch(Base):
    __tablename__ = 'branches'

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Employee(Base):
    __tablename__ = 'employees'
    __table_args__ = (
        UniqueConstraint('mobile', 'branch_id', name='employees_mobile_branch_id_key'),
    )

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[EmployeeRole] = mapped_column(
        SQLEnum(EmployeeRole, name='employee_role', values_callable=_values), nullable=False
    )
    mobile: Mapped[str | None] = mapped_column(Text)
    email: Mapped[str | None] = mapped_column(Text)
    base_salary: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')
    overtime_rate: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')
    branch_id: Mapped[int] = mapped_column(Id, ForeignKey('branches.id'), nullable=False)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default='true')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Customer(Base):
    __tablename__ = 'customers'
    __table_args__ = (
        UniqueConstraint('mobile', 'branch_id', name='customers_mobile_branch_id_key'),
    )

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    mobile: Mapped[str] = mapped_column(Text, nullable=False)
    address: Mapped[str | None] = mapped_column(Text)
    due_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')
    branch_id: Mapped[int] = mapped_column(Id, ForeignKey('branches.id'), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Supplier(Base):
    __tablename__ = 'suppliers'

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    mobile: Mapped[str | None] = mapped_column(Text)
    branch_id: Mapped[int] = mapped_column(Id, ForeignKey('branches.id'), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Account(Base):
    __tablename__ = 'accounts'

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    type: Mapped[AccountType] = mapped_column(
        SQLEnum(AccountType, name='account_type', values_callable=_values), nullable=False
    )
    current_balance: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')
    branch_id: Mapped[int] = mapped_column(Id, ForeignKey('branches.id'), nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Product(Base):
    __tablename__ = 'products'
    __table_args__ = (
        CheckConstraint('quantity >= 0', name='products_quantity_non_negative_ck'),
    )

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    product_name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class ProductStockRegistry(Base):
    __tablename__ = 'product_stock_registry'

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    memo_no: Mapped[str] = mapped_column(Text, nullable=False)
    stock_date: Mapped[date] = mapped_column(Date, nullable=False)
    branch_id: Mapped[int] = mapped_column(Id, ForeignKey('branches.id'), nullable=False)
    product_id: Mapped[int] = mapped_column(Id, ForeignKey('products.id'), nullable=False)
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Order(Base):
    __tablename__ = 'orders'
    __table_args__ = (
        UniqueConstraint('memo_no', 'branch_id', name='orders_memo_no_branch_id_key'),
        CheckConstraint('received_amount >= 0', name='orders_received_non_negative_ck'),
        CheckConstraint('received_amount <= total_amount', name='orders_received_within_total_ck'),
        CheckConstraint('delivered_items <= total_items', name='orders_delivered_within_total_ck'),
    )

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    branch_id: Mapped[int] = mapped_column(Id, ForeignKey('branches.id'), nullable=False)
    memo_no: Mapped[str] = mapped_column(Text, nullable=False)
    order_date: Mapped[date] = mapped_column(Date, nullable=False)
    delivery_date: Mapped[date | None] = mapped_column(Date)
    salesperson_id: Mapped[int] = mapped_column(Id, ForeignKey('employees.id'), nullable=False)
    customer_id: Mapped[int] = mapped_column(Id, ForeignKey('customers.id'), nullable=False)
    total_items: Mapped[int] = mapped_column(BigInteger, nullable=False)
    delivered_items: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    received_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')
    payment_account_id: Mapped[int | None] = mapped_column(Id, ForeignKey('accounts.id'))
    status: Mapped[OrderStatus] = mapped_column(
        SQLEnum(OrderStatus, name='order_status', values_callable=_values),
        nullable=False,
        default=OrderStatus.PENDING,
        server_default=OrderStatus.PENDING.value,
    )
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class OrderItem(Base):
    __tablename__ = 'order_items'

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    order_id: Mapped[int] = mapped_column(Id, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    product_id: Mapped[int] = mapped_column(Id, ForeignKey('products.id'), nullable=False)
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False)


class OrderTransaction(Base):
    __tablename__ = 'order_transactions'

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    order_id: Mapped[int] = mapped_column(Id, ForeignKey('orders.id', ondelete='CASCADE'), nullable=False)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    memo_no: Mapped[str] = mapped_column(Text, nullable=False)
    payment_account_id: Mapped[int | None] = mapped_column(Id, ForeignKey('accounts.id'))
    delivered_by: Mapped[int | None] = mapped_column(Id, ForeignKey('employees.id'))
    quantity_delivered: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')
    transaction_type: Mapped[TransactionType] = mapped_column(
        SQLEnum(TransactionType, name='transaction_type', values_callable=_values), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Sale(Base):
    __tablename__ = 'sales'
    __table_args__ = (
        UniqueConstraint('memo_no', 'branch_id', name='sales_memo_no_branch_id_key'),
        CheckConstraint('received_amount >= 0', name='sales_received_non_negative_ck'),
        CheckConstraint('received_amount <= total_amount', name='sales_received_within_total_ck'),
    )

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    branch_id: Mapped[int] = mapped_column(Id, ForeignKey('branches.id'), nullable=False)
    memo_no: Mapped[str] = mapped_column(Text, nullable=False)
    sale_date: Mapped[date] = mapped_column(Date, nullable=False)
    salesperson_id: Mapped[int] = mapped_column(Id, ForeignKey('employees.id'), nullable=False)
    customer_id: Mapped[int] = mapped_column(Id, ForeignKey('customers.id'), nullable=False)
    total_items: Mapped[int] = mapped_column(BigInteger, nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    received_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')
    payment_account_id: Mapped[int | None] = mapped_column(Id, ForeignKey('accounts.id'))
    status: Mapped[SaleStatus] = mapped_column(
        SQLEnum(SaleStatus, name='sale_status', values_callable=_values),
        nullable=False,
        default=SaleStatus.DELIVERED,
        server_default=SaleStatus.DELIVERED.value,
    )
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class SaleItem(Base):
    __tablename__ = 'sale_items'

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    sale_id: Mapped[int] = mapped_column(Id, ForeignKey('sales.id', ondelete='CASCADE'), nullable=False)
    product_id: Mapped[int] = mapped_column(Id, ForeignKey('products.id'), nullable=False)
    quantity: Mapped[int] = mapped_column(BigInteger, nullable=False)
    subtotal: Mapped[Decimal] = mapped_column(Money, nullable=False)


class SaleTransaction(Base):
    __tablename__ = 'sale_transactions'

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    sale_id: Mapped[int] = mapped_column(Id, ForeignKey('sales.id', ondelete='CASCADE'), nullable=False)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    memo_no: Mapped[str] = mapped_column(Text, nullable=False)
    payment_account_id: Mapped[int | None] = mapped_column(Id, ForeignKey('accounts.id'))
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        SQLEnum(TransactionType, name='transaction_type', values_callable=_values), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class Purchase(Base):
    __tablename__ = 'purchases'

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    memo_no: Mapped[str] = mapped_column(Text, nullable=False)
    purchase_date: Mapped[date] = mapped_column(Date, nullable=False)
    supplier_id: Mapped[int] = mapped_column(Id, ForeignKey('suppliers.id'), nullable=False)
    branch_id: Mapped[int] = mapped_column(Id, ForeignKey('branches.id'), nullable=False)
    total_amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())


class TopSheet(Base):
    __tablename__ = 'top_sheet'
    __table_args__ = (
        UniqueConstraint('sheet_date', 'branch_id', name='top_sheet_sheet_date_branch_id_key'),
    )

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    sheet_date: Mapped[date] = mapped_column(Date, nullable=False)
    branch_id: Mapped[int] = mapped_column(Id, ForeignKey('branches.id'), nullable=False)
    expense: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')
    cash: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')
    bank: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')
    order_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    delivery: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    cancelled: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    ready_made: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    sales_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')


class EmployeeProgress(Base):
    __tablename__ = 'employees_progress'
    __table_args__ = (
        UniqueConstraint('sheet_date', 'employee_id', name='employees_progress_sheet_date_employee_id_key'),
    )

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    sheet_date: Mapped[date] = mapped_column(Date, nullable=False)
    branch_id: Mapped[int] = mapped_column(Id, ForeignKey('branches.id'), nullable=False)
    employee_id: Mapped[int] = mapped_column(Id, ForeignKey('employees.id'), nullable=False)
    sale_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')
    sale_return_amount: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')
    order_count: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    production_units: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    overtime_hours: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0, server_default='0')
    advance_payment: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')
    salary: Mapped[Decimal] = mapped_column(Money, nullable=False, default=ZERO, server_default='0')


class LedgerTransaction(Base):
    __tablename__ = 'transactions'

    id: Mapped[int] = mapped_column(Id, primary_key=True)
    transaction_date: Mapped[date] = mapped_column(Date, nullable=False)
    memo_no: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    branch_id: Mapped[int] = mapped_column(Id, ForeignKey('branches.id'), nullable=False)
    from_entity_type: Mapped[EntityType] = mapped_column(
        SQLEnum(EntityType, name='entity_type', values_callable=_values), nullable=False
    )
    from_entity_id: Mapped[int] = mapped_column(Id, nullable=False)
    to_entity_type: Mapped[EntityType] = mapped_column(
        SQLEnum(EntityType, name='entity_type', values_callable=_values), nullable=False
    )
    to_entity_id: Mapped[int] = mapped_column(Id, nullable=False)
    amount: Mapped[Decimal] = mapped_column(Money, nullable=False)
    transaction_type: Mapped[TransactionType] = mapped_column(
        SQLEnum(TransactionType, name='transaction_type', values_callable=_values), nullable=False
    )
    notes: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
