import csv
import io
from datetime import date
from typing import Iterable

from ..schemas import BEDROOM_BUCKETS, PROPERTY_TYPES, SuburbRecord

CSV_HEADERS = [
    "Suburb",
    "State",
    "Postcode",
    "Hot",
    "Property Type",
    "Beds",
    "Buy Price",
    "Weekly Rent",
    "Yield %",
    "Date Added",
    "Last Updated",
]
FILENAME_PREFIX = "housepulse-data"


def _number(value: float) -> str:
    if not value:
        return ""
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}"


def export_rows(records: Iterable[SuburbRecord]) -> list[list[str]]:
    """One row per record × property type × bedroom bucket."""
    rows = []
    for r in records:
        for t in PROPERTY_TYPES:
            data = r.property_type(t)
            for b in BEDROOM_BUCKETS:
                price = data.price(b)
                priced = price.is_priced
                rows.append([
                    r.suburb,
                    r.state.value,
                    r.postcode,
                    "Yes" if r.is_hot else "No",
                    t,
                    b,
                    _number(price.buy_price),
                    _number(price.rent_price),
                    f"{data.yields.get(b, 0.0):.2f}" if priced else "",
                    r.date_added,
                    r.last_updated,
                ])
    return rows


def export_csv(records: Iterable[SuburbRecord]) -> str:
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    writer.writerows(export_rows(records))
    return buf.getvalue()


def export_filename(today: date | None = None) -> str:
    return f"{FILENAME_PREFIX}-{(today or date.today()).isoformat()}.csv"
