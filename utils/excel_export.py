from datetime import datetime
from decimal import Decimal
from io import BytesIO

from django.http import HttpResponse
from django.utils import timezone
from openpyxl import Workbook
from openpyxl.styles import Alignment, Font
from openpyxl.utils import get_column_letter

XLSX_CONTENT_TYPE = 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'
MONEY_FORMAT = '#,##0.00'


def _cell_value(value):
    if value is None:
        return ''
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime) and value.tzinfo is not None:
        return timezone.localtime(value).replace(tzinfo=None)
    return value


def xlsx_response(columns, rows, file_prefix, sheet_title='Sheet1'):
    """
    Excel download.

    `columns` is a list of (header, width, is_money) tuples and `rows` an
    iterable of value lists in the same order.
    """
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title

    ws.append([header for header, _, _ in columns])
    for cell in ws[1]:
        cell.font = Font(bold=True)
        cell.alignment = Alignment(wrap_text=True)

    for row in rows:
        ws.append([_cell_value(v) for v in row])

    for position, (_, width, is_money) in enumerate(columns, start=1):
        letter = get_column_letter(position)
        ws.column_dimensions[letter].width = width
        if is_money:
            for (cell,) in ws.iter_rows(min_row=2, min_col=position, max_col=position):
                cell.number_format = MONEY_FORMAT

    buffer = BytesIO()
    wb.save(buffer)

    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    response = HttpResponse(buffer.getvalue(), content_type=XLSX_CONTENT_TYPE)
    response['Content-Disposition'] = f'attachment; filename="{file_prefix}_{timestamp}.xlsx"'
    return response
