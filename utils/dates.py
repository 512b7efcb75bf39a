from datetime import datetime

from rest_framework.exceptions import ValidationError

DATE_INPUT_FORMATS = ['%Y-%m-%d', '%d-%m-%Y']


def parse_date(value, param):
    """Parse a query-string date; None when absent"""
    if not value:
        return None
    for fmt in DATE_INPUT_FORMATS:
        try:
            return datetime.strptime(value.strip(), fmt).date()
        except ValueError:
            continue
    raise ValidationError({param: [f"Invalid date '{value}'. Use YYYY-MM-DD"]})


def parse_date_range(query_params, start_param='start_date', end_param='end_date'):
    """
    (start, end) from the query string; either side may be None.

    Raises ValidationError when the range is reversed.
    """
    start = parse_date(query_params.get(start_param), start_param)
    end = parse_date(query_params.get(end_param), end_param)
    if start and end and start > end:
        raise ValidationError({start_param: [f"{start_param} cannot be after {end_param}"]})
    return start, end
