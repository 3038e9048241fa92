"""Client-side search, sort, paging and CSV export for entity list views."""
import csv
import datetime
import io
import logging
import math

from propdesk.config import PAGE_SIZE

logger = logging.getLogger(__name__)

ASC = "asc"
DESC = "desc"
ALL = "all"


def _value(row, field):
    if isinstance(row, dict):
        return row.get(field)
    return getattr(row, field, None)


def matches(row, term, fields):
    """Case-insensitive substring match of ``term`` against any of ``fields``."""
    needle = (term or "").strip().lower()
    if not needle:
        return True
    for field in fields:
        value = _value(row, field)
        if value is not None and needle in str(value).lower():
            return True
    return False


def _same(value, wanted):
    return value is not None and str(value).lower() == str(wanted).lower()


def filter_rows(rows, term="", fields=(), **facets):
    """Search ``fields`` for ``term`` and keep rows whose facets match, ignoring case.

    A facet set to ``None`` or "all" (any case) does not filter.
    """
    active = {k: v for k, v in facets.items() if v is not None and str(v).lower() != ALL}
    result = []
    for row in rows:
        if not matches(row, term, fields):
            continue
        if any(not _same(_value(row, k), v) for k, v in active.items()):
            continue
        result.append(row)
    return result


class SortState:
    def __init__(self, key=None, direction=ASC):
        self.key = key
        self.direction = direction

    def toggle(self, key):
        if self.key == key and self.direction == ASC:
            self.direction = DESC
        else:
            self.direction = ASC
        self.key = key
        return self

    def apply(self, rows):
        if not self.key:
            return list(rows)
        return sort_rows(rows, self.key, self.direction)


def _sort_key(value):
    if isinstance(value, str):
        return (1, value.lower())
    if isinstance(value, (datetime.date, datetime.datetime)):
        return (1, value.isoformat())
    return (0, value)


def sort_rows(rows, key, direction=ASC):
    """Sort by one field. Rows with no value go last in either direction."""
    present = [r for r in rows if _value(r, key) is not None]
    missing = [r for r in rows if _value(r, key) is None]
    present.sort(key=lambda r: _sort_key(_value(r, key)), reverse=(direction == DESC))
    return present + missing


def page_count(rows, page_size=PAGE_SIZE):
    return max(1, math.ceil(len(rows) / page_size))


def paginate(rows, page, page_size=PAGE_SIZE):
    """Return the 1-based ``page`` slice of ``rows``."""
    page = min(max(1, page), page_count(rows, page_size))
    start = (page - 1) * page_size
    return rows[start:start + page_size]


def _cell(value):
    if value is None:
        return ""
    if isinstance(value, (datetime.date, datetime.datetime)):
        return value.isoformat()
    return value


def escape_csv(value):
    """Format one value as a CSV field, quoting it when it holds a comma, quote or newline."""
    value = _cell(value)
    if value == "":
        return ""
    buf = io.StringIO()
    csv.writer(buf, lineterminator="\n").writerow([value])
    return buf.getvalue()[:-1]


def to_csv(rows, columns):
    """Render ``rows`` as CSV text with a header row; ``columns`` is a sequence of (header, field)."""
    buf = io.StringIO()
    writer = csv.writer(buf)
    writer.writerow([header for header, _ in columns])
    for row in rows:
        writer.writerow([_cell(_value(row, field)) for _, field in columns])
    return buf.getvalue()


def write_csv(filepath, rows, columns):
    with open(filepath, "w", newline="", encoding="utf-8") as f:
        f.write(to_csv(rows, columns))
    logger.info("Exported %d row(s) to %s", len(rows), filepath)
    return filepath
