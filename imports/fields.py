from datetime import date, datetime
from decimal import Decimal, InvalidOperation

from openpyxl.utils.datetime import from_excel


class RowError(Exception):
    """The current spreadsheet row cannot be imported; it is reported and skipped"""


def is_blank(value):
    return value is None or (isinstance(value, str) and not value.strip())


def row_is_blank(row):
    return row is None or all(is_blank(v) for v in row)


def to_text(value):
    """Trimmed string; whole floats (1001.0) come back as "1001"."""
    if value is None:
        return ''
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def to_decimal(value, label, required=True, default=Decimal('0')):
    if is_blank(value):
        if required:
            raise RowError(f"{label} is required")
        return default
    if isinstance(value, bool):
        raise RowError(f"Invalid {label} \"{value}\"")

    if isinstance(value, (int, float, Decimal)):
        text = str(value)
    else:
        text = str(value).replace(',', '').strip()

    try:
        number = Decimal(text)
    except InvalidOperation:
        raise RowError(f"Invalid {label} \"{value}\"")

    if not number.is_finite():
        raise RowError(f"Invalid {label} \"{value}\"")
    return number


def to_int(value, label, required=True, default=0):
    number = to_decimal(value, label, required=required, default=None)
    if number is None:
        return default
    return int(number)


DATE_FORMATS = ['%Y-%m-%d', '%d-%m-%Y', '%d/%m/%Y', '%d.%m.%Y', '%Y/%m/%d']


def to_date(value, label, required=True):
    if is_blank(value):
        if required:
            raise RowError(f"{label} is required")
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return from_excel(value).date()
        except (ValueError, OverflowError, TypeError, AttributeError):
            raise RowError(f"Invalid date format for {value}")

    text = str(value).strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    raise RowError(f"Invalid date format for {text}")
