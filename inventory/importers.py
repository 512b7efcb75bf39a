from decimal import Decimal

from imports.fields import RowError, to_decimal, to_int, to_text
from imports.pipeline import Column, SpreadsheetImporter

from .models import Product


class ProductImporter(SpreadsheetImporter):
    """
    Product master import

    Required columns: code, name, price, weight, stock
    Optional columns: MRP (defaults to price), scheme, company
    """
    entity = 'products'
    columns = (
        Column('code', ['code'], required=True, label='code'),
        Column('company', ['company']),
        Column('mrp', ['mrp']),
        Column('price', ['price'], required=True, label='price'),
        Column('name', ['product name', 'name'], required=True, label='name'),
        Column('weight', ['weight'], required=True, label='weight'),
        Column('scheme', ['scheme']),
        Column('stock', ['stock'], required=True, label='stock'),
    )

    def parse_row(self, values, row_number):
        code = to_text(values['code']).upper()
        name = to_text(values['name'])
        if not code or not name:
            raise RowError("Missing or invalid required fields")

        price = to_decimal(values['price'], 'price')
        weight = to_decimal(values['weight'], 'weight')
        stock = to_int(values['stock'], 'stock')
        mrp = to_decimal(values['mrp'], 'MRP', required=False, default=None)
        scheme = to_decimal(values['scheme'], 'scheme', required=False, default=Decimal('0'))

        if price < 0 or weight < 0:
            raise RowError("Price and weight cannot be negative")
        if stock < 0:
            raise RowError("Stock cannot be negative")

        return {
            'code':    code,
            'name':    name,
            'company': to_text(values['company']),
            'mrp':     mrp if mrp else price,
            'price':   price,
            'weight':  weight,
            'scheme':  scheme,
            'stock':   stock,
        }

    def find_duplicate(self, data):
        if Product.objects.filter(code=data['code']).exists():
            return f"Product code {data['code']} already exists"
        return None

    def persist(self, data):
        return Product.objects.create(**data)
