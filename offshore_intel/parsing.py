"""Cell-level parsing helpers shared by the source parsers.

Each function accepts a raw spreadsheet cell (string, number, date or None)
and returns a parsed value. None of them raise on bad input; callers decide
whether a None result is worth a quality issue.
"""

import math
import re
from datetime import date, datetime, timedelta

import pandas as pd

# Spreadsheet serial dates count days from this epoch (Excel's 1900 leap bug
# is already absorbed by starting on the 30th).
EXCEL_EPOCH = datetime(1899, 12, 30)
MAX_EXCEL_SERIAL = 2958465

MONTHS = {
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "may": 5, "jun": 6,
    "jul": 7, "aug": 8, "sep": 9, "oct": 10, "nov": 11, "dec": 12,
}

MONTH_NAMES = {
    1: "January", 2: "February", 3: "March", 4: "April", 5: "May", 6: "June",
    7: "July", 8: "August", 9: "September", 10: "October", 11: "November", 12: "December",
}

_DATE_FORMATS = (
    "%Y-%m-%d",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%m/%d/%Y",
    "%m/%d/%y %H:%M",
    "%m/%d/%y",
    "%d-%b-%Y",
    "%d-%b-%y",
    "%d %b %Y",
    "%b %d, %Y",
)

_NUMBER_CLEAN_RE = re.compile(r"[^0-9.\-eE]")
_MONTH_YEAR_RE = re.compile(r"^([A-Za-z]{3,9})[-\s/]+(\d{2}|\d{4})$")
_NUMERIC_MONTH_YEAR_RE = re.compile(r"^(\d{1,2})[-/](\d{2}|\d{4})$")
_YEAR_MONTH_RE = re.compile(r"^(\d{4})[-/](\d{1,2})$")


def normalize_header(name) -> str:
    """Collapse a column header to lowercase words: ' Voyage_Number ' -> 'voyage number'."""
    if name is None:
        return ""
    text = str(name).strip().lower()
    text = re.sub(r"[_\-./#()]+", " ", text)
    return re.sub(r"\s+", " ", text).strip()


def is_blank(value) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if value is pd.NaT:
        return True
    return isinstance(value, str) and not value.strip()


def parse_text(value) -> str:
    """Return a stripped string, or '' for blank cells."""
    if is_blank(value):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_number(value) -> float:
    """Parse '1,234.5 bbls', 12, '' or 'n/a' to float; anything unparseable is 0.0."""
    if is_blank(value) or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else 0.0
    text = str(value).strip()
    negative = text.startswith("(") and text.endswith(")")
    cleaned = _NUMBER_CLEAN_RE.sub("", text.replace(",", ""))
    if not cleaned or cleaned in {"-", ".", "-."}:
        return 0.0
    try:
        number = float(cleaned)
    except ValueError:
        return 0.0
    if not math.isfinite(number):
        return 0.0
    return -abs(number) if negative else number


def _year(value: str) -> int:
    year = int(value)
    return year + 2000 if year < 100 else year


def _from_serial(serial: float) -> datetime | None:
    if not 1 <= serial <= MAX_EXCEL_SERIAL:
        return None
    return EXCEL_EPOCH + timedelta(days=serial)


def parse_date(value) -> datetime | None:
    """Parse spreadsheet serials, native dates and common text formats.

    Returns None when nothing matches so the caller can record a parse issue.
    Month-only inputs ('Jan-24', '01-24', '2024-01') resolve to the first of
    the month.
    """
    if is_blank(value) or isinstance(value, bool):
        return None
    if isinstance(value, pd.Timestamp):
        return value.to_pydatetime().replace(tzinfo=None)
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, (int, float)):
        return _from_serial(float(value))

    text = str(value).strip()
    try:
        return _from_serial(float(text))
    except ValueError:
        pass

    # Trailing timezone suffixes appear in API exports
    candidate = re.sub(r"(Z|[+-]\d{2}:?\d{2})$", "", text).strip()
    if "." in candidate and "T" in candidate:
        candidate = candidate.split(".", 1)[0]
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt)
        except ValueError:
            continue

    match = _MONTH_YEAR_RE.match(text)
    if match:
        month = MONTHS.get(match.group(1)[:3].lower())
        if month:
            return datetime(_year(match.group(2)), month, 1)
    match = _NUMERIC_MONTH_YEAR_RE.match(text)
    if match and 1 <= int(match.group(1)) <= 12:
        return datetime(_year(match.group(2)), int(match.group(1)), 1)
    match = _YEAR_MONTH_RE.match(text)
    if match and 1 <= int(match.group(2)) <= 12:
        return datetime(int(match.group(1)), int(match.group(2)), 1)
    return None


def parse_month(value) -> int | None:
    """Parse 'Jan', 'January', '1' or 1 to a month number."""
    if is_blank(value):
        return None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        month = int(value)
        return month if 1 <= month <= 12 else None
    text = str(value).strip().lower()
    if text.isdigit():
        month = int(text)
        return month if 1 <= month <= 12 else None
    return MONTHS.get(text[:3])


def parse_year(value) -> int | None:
    """Parse a year cell; two-digit years are 20xx."""
    if is_blank(value) or isinstance(value, bool):
        return None
    match = re.search(r"\d{2,4}", parse_text(value))
    if not match:
        return None
    return _year(match.group(0))
