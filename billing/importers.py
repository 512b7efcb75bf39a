from decimal import Decimal

from accounts.models import User
from imports.fields import RowError, to_date, to_decimal, to_text
from imports.pipeline import Column, SpreadsheetImporter
from utils.days import normalize_day

from .models import Bill
from .reconciliation import compute_status


class BillImporter(SpreadsheetImporter):
    """
    Bill import

    Required columns: bill number, bill date, amount, retailer
    Optional columns: due date, received, balance, staff, collection day

    The due amount comes from `balance` when present, otherwise from
    amount - received, otherwise the full amount. Columns are declared so
    that the more specific headers ("due date", "received amount") are
    claimed before the generic ones ("date", "amount").
    """
    entity = 'bills'
    columns = (
        Column('bill_number', ['bill no', 'bill number', 'invoice no', 'invoice number'],
               required=True, label='bill number'),
        Column('due_date', ['due date']),
        Column('bill_date', ['bill date', 'invoice date', 'date'], required=True, label='bill date'),
        Column('received', ['received', 'paid']),
        Column('balance', ['balance', 'due amount', 'outstanding']),
        Column('amount', ['bill amount', 'amount', 'total'], required=True, label='amount'),
        Column('retailer', ['retailer', 'customer', 'party'], required=True, label='retailer'),
        Column('staff', ['staff', 'assigned to', 'salesman']),
        Column('collection_day', ['collection day', 'day']),
    )

    def parse_row(self, values, row_number):
        bill_number = to_text(values['bill_number']).upper()
        retailer_name = to_text(values['retailer'])
        if not bill_number or not retailer_name:
            raise RowError("Missing required fields")

        amount = to_decimal(values['amount'], 'amount')
        if amount <= 0:
            raise RowError(f"Invalid amount \"{values['amount']}\"")

        bill_date = to_date(values['bill_date'], 'bill date')
        due_date = to_date(values['due_date'], 'due date', required=False) or bill_date

        balance = to_decimal(values['balance'], 'balance', required=False, default=None)
        if balance is None:
            received = to_decimal(values['received'], 'received', required=False)
            balance = amount - received
        if balance < 0 or balance > amount:
            raise RowError(f"Balance {balance} must be between 0 and the bill amount {amount}")

        staff = None
        staff_name = to_text(values['staff'])
        if staff_name:
            staff = User.objects.find_staff_by_name(staff_name)
            if staff is None:
                self.warn(row_number, f"Staff member \"{staff_name}\" not found")

        return {
            'bill_number':    bill_number,
            'retailer_name':  retailer_name,
            'amount':         amount.quantize(Decimal('0.01')),
            'due_amount':     balance.quantize(Decimal('0.01')),
            'bill_date':      bill_date,
            'due_date':       due_date,
            'collection_day': normalize_day(values['collection_day']),
            'staff':          staff,
        }

    def find_duplicate(self, data):
        if Bill.objects.filter(bill_number=data['bill_number']).exists():
            return f"Bill number {data['bill_number']} already exists"
        return None

    def persist(self, data):
        staff = data.pop('staff')
        bill = Bill(
            **data,
            prior_paid=data['amount'] - data['due_amount'],
            status=compute_status(data['amount'], data['due_amount']),
            created_by=self.user,
        )
        bill.log(f"Imported with amount {bill.amount}, due {bill.due_amount}")
        if staff:
            bill.assign_to(staff)
        bill.save()
        return bill
