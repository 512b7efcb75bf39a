from accounts.models import User
from imports.fields import RowError, to_text
from imports.pipeline import Column, SpreadsheetImporter
from utils.days import normalize_day

from .models import Retailer


class RetailerImporter(SpreadsheetImporter):
    """
    Retailer import

    Required columns: name, address 1
    Optional columns: address 2, day assigned (MON/Monday/...), assigned to (staff name)

    An unknown day is cleared; an unknown staff name is reported but the
    retailer is still created, unassigned.
    """
    entity = 'retailers'
    columns = (
        Column('assigned_to', ['assigned to', 'assignedto']),
        Column('day_assigned', ['day assigned', 'dayassigned', 'day']),
        Column('address1', ['address 1', 'address1'], required=True, label='address 1'),
        Column('address2', ['address 2', 'address2']),
        Column('name', ['retailer name', 'name'], required=True, label='name'),
    )

    def parse_row(self, values, row_number):
        name = to_text(values['name'])
        address1 = to_text(values['address1'])
        if not name or not address1:
            raise RowError("Missing required fields")

        assigned_to = None
        staff_name = to_text(values['assigned_to'])
        if staff_name:
            assigned_to = User.objects.find_staff_by_name(staff_name)
            if assigned_to is None:
                self.warn(row_number, f"Staff member \"{staff_name}\" not found")

        return {
            'name':         name,
            'address1':     address1,
            'address2':     to_text(values['address2']),
            'day_assigned': normalize_day(values['day_assigned']),
            'assigned_to':  assigned_to,
        }

    def find_duplicate(self, data):
        if Retailer.objects.filter(name__istartswith=data['name']).exists():
            return f"Retailer \"{data['name']}\" already exists"
        return None

    def persist(self, data):
        return Retailer.objects.create(created_by=self.user, **data)
