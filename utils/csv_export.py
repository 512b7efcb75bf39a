import csv
from datetime import datetime

from django.http import HttpResponse


def csv_response(records, column_mapping, file_prefix):
    """
    CSV download of `records`.

    column_mapping maps attribute name -> header text; attribute names may
    use dots to follow relations ("assigned_to.name").
    """
    timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
    response = HttpResponse(content_type='text/csv; charset=utf-8')
    response['Content-Disposition'] = f'attachment; filename="{file_prefix}_{timestamp}.csv"'

    writer = csv.writer(response, quoting=csv.QUOTE_ALL)
    writer.writerow(list(column_mapping.values()))

    for record in records:
        row = []
        for field in column_mapping:
            value = record
            for part in field.split('.'):
                value = getattr(value, part, None) if value is not None else None
            row.append('' if value is None else str(value))
        writer.writerow(row)

    return response
