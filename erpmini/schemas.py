from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated

from pydantic import BaseModel, Field

from erpmini.models import EmployeeRole

MoneyIn = Annotated[Decimal, Field(max_digits=14, decimal_places=2)]


# Requests


class LineItemIn(BaseModel):
    product_id: int
    quantity: int
    subtotal: MoneyIn = Decimal('0')


class OrderIn(BaseModel):
    salesperson_id: int
    customer_id: int
    order_date: date
    delivery_date: date | None = None
    total_amount: MoneyIn
    received_amount: MoneyIn = Decimal('0')
    payment_account_id: int | None = None
    memo_no: str | None = None
    notes: str | None = None
    items: list[LineItemIn] = Field(default_factory=list)


class DeliveryIn(BaseModel):
    delivery_date: date
    quantity: int = 0
    amount: MoneyIn = Decimal('0')
    payment_account_id: int | None = None
    delivered_by: int | None = None


class SaleIn(BaseModel):
    salesperson_id: int
    customer_id: int
    sale_date: date
    total_amount: MoneyIn
    received_amount: MoneyIn = Decimal('0')
    payment_account_id: int | None = None
    memo_no: str | None = None
    notes: str | None = None
    items: list[LineItemIn] = Field(default_factory=list)


class PurchaseIn(BaseModel):
    supplier_id: int
    purchase_date: date
    total_amount: MoneyIn
    memo_no: str | None = None
    notes: str | None = None


class SalaryIn(BaseModel):
    employee_id: int
    salary_date: date
    amount: MoneyIn
    payment_account_id: int


class WorkerProgressIn(BaseModel):
    employee_id: int
    sheet_date: date
    production_units: int = 0
    overtime_hours: int = 0
    advance_payment: MoneyIn = Decimal('0')
    payment_account_id: int | None = None


class RestockItemIn(BaseModel):
    product_id: int
    quantity: int


class RestockIn(BaseModel):
    stock_date: date
    memo_no: str | None = None
    items: list[RestockItemIn] = Field(default_factory=list)


class CustomerIn(BaseModel):
    name: str = Field(min_length=1)
    mobile: str = Field(min_length=1)
    address: str | None = None


class SupplierIn(BaseModel):
    name: str = Field(min_length=1)
    mobile: str | None = None


class EmployeeIn(BaseModel):
    name: str = Field(min_length=1)
    role: EmployeeRole
    mobile: str | None = None
    email: str | None = None
    base_salary: MoneyIn = Decimal('0')
    overtime_rate: MoneyIn = Decimal('0')
    active: bool = True


# Envelopes


class MessageResponse(BaseModel):
    error: bool = False
    status: str = 'success'
    message: str


class ErrorResponse(BaseModel):
    error: bool = True
    status: str
    message: str


class OrderCreatedResponse(MessageResponse):
    order_id: int


class DeliveryResponse(MessageResponse):
    order_status: str


class SaleCreatedResponse(MessageResponse):
    sale_id: int


class PurchaseCreatedResponse(MessageResponse):
    purchase_id: int


class ProgressSavedResponse(MessageResponse):
    progress_id: int


class RestockResponse(MessageResponse):
    memo_no: str


class CustomerCreatedResponse(MessageResponse):
    customer_id: int


class SupplierCreatedResponse(MessageResponse):
    supplier_id: int


class EmployeeCreatedResponse(MessageResponse):
    employee_id: int


# Orders and sales


class LineItemOut(BaseModel):
    id: int
    product_id: int
    product_name: str
    quantity: int
    subtotal: float


class OrderSummaryOut(BaseModel):
    id: int
    memo_no: str
    order_date: date
    delivery_date: date | None = None
    customer_name: str
    customer_mobile: str
    salesperson_name: str
    total_items: int
    delivered_items: int
    total_amount: float
    received_amount: float
    status: str


class OrderTransactionOut(BaseModel):
    transaction_id: int
    transaction_date: date
    memo_no: str
    payment_account_id: int | None = None
    payment_account_name: str
    quantity_delivered: int
    amount: float
    transaction_type: str


class OrderDetailOut(BaseModel):
    id: int
    branch_id: int
    memo_no: str
    order_date: date
    delivery_date: date | None = None
    salesperson_id: int
    salesperson_name: str
    customer_id: int
    customer_name: str
    customer_mobile: str
    total_items: int
    delivered_items: int
    total_amount: float
    received_amount: float
    payment_account_id: int | None = None
    status: str
    notes: str | None = None
    items: list[LineItemOut]
    order_transactions: list[OrderTransactionOut]


class OrderListResponse(MessageResponse):
    message: str = 'orders fetched'
    total_count: int
    orders: list[OrderSummaryOut]


class OrderDetailResponse(MessageResponse):
    message: str = 'order fetched'
    order: OrderDetailOut


class SaleSummaryOut(BaseModel):
    id: int
    memo_no: str
    sale_date: date
    customer_name: str
    customer_mobile: str
    salesperson_name: str
    total_items: int
    total_amount: float
    received_amount: float
    status: str


class SaleTransactionOut(BaseModel):
    transaction_id: int
    transaction_date: date
    memo_no: str
    payment_account_id: int | None = None
    amount: float
    transaction_type: str


class SaleDetailOut(BaseModel):
    id: int
    branch_id: int
    memo_no: str
    sale_date: date
    salesperson_id: int
    salesperson_name: str
    customer_id: int
    customer_name: str
    customer_mobile: str
    total_items: int
    total_amount: float
    received_amount: float
    payment_account_id: int | None = None
    status: str
    notes: str | None = None
    items: list[LineItemOut]
    sale_transactions: list[SaleTransactionOut]


class SaleListResponse(MessageResponse):
    message: str = 'sales fetched'
    total_count: int
    sales: list[SaleSummaryOut]


class SaleDetailResponse(MessageResponse):
    message: str = 'sale fetched'
    sale: SaleDetailOut


# Inventory


class ProductOut(BaseModel):
    id: int
    product_name: str
    quantity: int


class ProductListResponse(MessageResponse):
    message: str = 'products fetched'
    products: list[ProductOut]


class StockEntryOut(BaseModel):
    id: int
    memo_no: str
    stock_date: date
    branch_id: int
    branch_name: str
    product_id: int
    product_name: str
    quantity: int


class StockTotalsOut(BaseModel):
    quantity: int


class StockReportResponse(MessageResponse):
    message: str = 'stock report fetched'
    total_count: int
    report: list[StockEntryOut]
    totals: StockTotalsOut


# Purchases


class PurchaseOut(BaseModel):
    id: int
    memo_no: str
    purchase_date: date
    supplier_id: int
    supplier_name: str
    branch_id: int
    total_amount: float
    notes: str | None = None


class PurchaseTotalsOut(BaseModel):
    total_amount: float


class PurchaseReportResponse(MessageResponse):
    message: str = 'purchases fetched'
    total_count: int
    report: list[PurchaseOut]
    totals: PurchaseTotalsOut


# Accounts


class AccountOut(BaseModel):
    id: int
    name: str
    type: str
    current_balance: float
    branch_id: int


class AccountListResponse(MessageResponse):
    message: str = 'accounts fetched'
    accounts: list[AccountOut]


class AccountNameOut(BaseModel):
    id: int
    name: str
    type: str


class AccountNamesResponse(MessageResponse):
    message: str = 'account names fetched'
    accounts: list[AccountNameOut]


# Customers, suppliers and staff


class CustomerOut(BaseModel):
    id: int
    name: str
    mobile: str
    address: str | None = None
    due_amount: float
    branch_id: int


class CustomerResponse(MessageResponse):
    message: str = 'customer fetched'
    customer: CustomerOut


class CustomerListResponse(MessageResponse):
    message: str = 'customers fetched'
    total_count: int
    customers: list[CustomerOut]


class CustomerNameOut(BaseModel):
    id: int
    name: str
    mobile: str


class CustomerNamesResponse(MessageResponse):
    message: str = 'customer names fetched'
    customers: list[CustomerNameOut]


class CustomerDueOut(BaseModel):
    id: int
    name: str
    mobile: str
    due_amount: float


class CustomerDueListResponse(MessageResponse):
    message: str = 'customers fetched'
    customers: list[CustomerDueOut]


class SupplierOut(BaseModel):
    id: int
    name: str
    mobile: str | None = None
    branch_id: int


class SupplierResponse(MessageResponse):
    message: str = 'supplier fetched'
    supplier: SupplierOut


class SupplierListResponse(MessageResponse):
    message: str = 'suppliers fetched'
    total_count: int
    suppliers: list[SupplierOut]


class EmployeeOut(BaseModel):
    id: int
    name: str
    role: str
    mobile: str | None = None
    email: str | None = None
    base_salary: float
    overtime_rate: float
    branch_id: int
    active: bool


class EmployeeResponse(MessageResponse):
    message: str = 'employee fetched'
    employee: EmployeeOut


class EmployeeListResponse(MessageResponse):
    message: str = 'employees fetched'
    total_count: int
    employees: list[EmployeeOut]


# Ledger


class TransactionOut(BaseModel):
    transaction_id: int
    transaction_date: date
    memo_no: str
    branch_id: int
    from_id: int
    from_type: str
    from_account_name: str
    to_id: int
    to_type: str
    to_account_name: str
    amount: float
    transaction_type: str
    notes: str | None = None
    created_at: datetime | None = None


class TransactionListResponse(MessageResponse):
    message: str = 'transactions fetched'
    total_count: int
    transactions: list[TransactionOut]


class TransactionSummaryResponse(MessageResponse):
    message: str = 'transaction summary fetched'
    start_date: date
    end_date: date
    summary: dict[str, float]


# Reports


class OrderOverviewOut(BaseModel):
    start_date: date
    end_date: date
    total_orders: int
    pending_orders: int
    checkout_orders: int
    completed_orders: int
    cancelled_orders: int
    total_orders_amount: float
    pending_orders_amount: float
    checkout_orders_amount: float
    completed_orders_amount: float
    cancelled_orders_amount: float


class OrderOverviewResponse(MessageResponse):
    message: str = 'order overview fetched'
    report: OrderOverviewOut


class BranchReportRowOut(BaseModel):
    id: int
    sheet_date: date
    branch_id: int
    expense: float
    cash: float
    bank: float
    order_count: int
    delivery: int
    cancelled: int
    ready_made: int
    sales_amount: float
    total_amount: float
    balance: float


class BranchReportTotalsOut(BaseModel):
    expense: float
    cash: float
    bank: float
    balance: float
    orders: int
    delivery: int


class BranchReportResponse(MessageResponse):
    message: str = 'branch report fetched'
    total_count: int
    report: list[BranchReportRowOut]
    totals: BranchReportTotalsOut


class SalespersonProgressOut(BaseModel):
    sales_person_id: int
    sales_person_name: str
    mobile: str | None = None
    email: str | None = None
    base_salary: float
    sheet_date: str
    order_count: int
    sale: float
    sale_return: float


class SalespersonTotalsOut(BaseModel):
    sale: float
    sale_return: float
    order_count: int


class SalespersonProgressResponse(MessageResponse):
    message: str = 'salesperson progress fetched'
    total_count: int
    report: list[SalespersonProgressOut]
    totals: SalespersonTotalsOut


class WorkerProgressOut(BaseModel):
    worker_id: int
    worker_name: str
    mobile: str | None = None
    email: str | None = None
    base_salary: float
    date: str
    total_advance_payment: float
    total_production_units: int
    total_overtime_hours: int


class WorkerProgressResponse(MessageResponse):
    message: str = 'worker progress fetched'
    report: list[WorkerProgressOut]


class SalaryRecordOut(BaseModel):
    id: int
    employee_id: int
    employee_name: str
    role: str
    base_salary: float
    total_salary: float
    sheet_date: date


class SalaryReportResponse(MessageResponse):
    message: str = 'salary report fetched'
    report: list[SalaryRecordOut]
