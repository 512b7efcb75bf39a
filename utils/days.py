DAYS_OF_WEEK = [
    'Monday', 'Tuesday', 'Wednesday', 'Thursday',
    'Friday', 'Saturday', 'Sunday',
]

DAY_CHOICES = [(day, day) for day in DAYS_OF_WEEK]

DAY_ABBREVIATIONS = {day[:3].upper(): day for day in DAYS_OF_WEEK}


def normalize_day(value):
    """
    Map a spreadsheet day value to a full day name.

    MON..SUN (any case) expand to the full name, full names are accepted in
    any case, anything else becomes "".
    """
    if value is None:
        return ''
    text = str(value).strip()
    if not text:
        return ''
    if text.upper() in DAY_ABBREVIATIONS:
        return DAY_ABBREVIATIONS[text.upper()]
    for day in DAYS_OF_WEEK:
        if text.lower() == day.lower():
            return day
    return ''


def day_name(d):
    """Weekday name of a date"""
    return DAYS_OF_WEEK[d.weekday()]
