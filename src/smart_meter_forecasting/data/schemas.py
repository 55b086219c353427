from enum import Enum, IntEnum

class Column(str, Enum):
    """
    Column identifiers of long-format smart-meter readings.

    Note:
        ``DATE``, ``SLOT`` and ``WEEKDAY`` are derived from
        ``TIMESTAMP`` during preprocessing; raw inputs only need
        ``SERIES_ID``, ``TIMESTAMP`` and ``VALUE``.
    """
    SERIES_ID = 'series_id'
    TIMESTAMP = 'timestamp'
    DATE = 'date'
    SLOT = 'slot'
    WEEKDAY = 'weekday'
    VALUE = 'value'

class Weekday(IntEnum):
    """ISO weekday numbers, Monday first."""
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6
    SUNDAY = 7

# Ordered weekday labels used for every weekly result
WEEKDAY_ORDER = tuple(Weekday)
# Tuesday-Thursday share one training sequence
MID_WEEK = (Weekday.TUESDAY, Weekday.WEDNESDAY, Weekday.THURSDAY)
# Columns required in raw readings
RAW_COLUMNS = (Column.SERIES_ID, Column.TIMESTAMP, Column.VALUE)
# Keys for sorting aligned data
KEYS = (Column.SERIES_ID, Column.DATE, Column.SLOT)
