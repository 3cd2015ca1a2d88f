# meditrack/utils/drug_export.py
import csv
from io import StringIO
from typing import Iterable

from meditrack.models.drug import Drug

EXPORT_HEADERS = [
    "Code",
    "Name",
    "Category",
    "Manufacturer",
    "Price",
    "Stock",
    "Min Stock Threshold",
    "Expiry Date",
    "Description",
]

# Lets Excel detect UTF-8
UTF8_BOM = "\ufeff"


def drugs_to_csv(drugs: Iterable[Drug]) -> str:
    """
    Serialize the display fields of `drugs` as CSV (with a UTF-8 BOM).
    Read-only projection; history and control flags are not exported.
    """
    output = StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_MINIMAL)
    writer.writerow(EXPORT_HEADERS)
    for drug in drugs:
        writer.writerow(
            [
                drug.code,
                drug.name,
                drug.category,
                drug.manufacturer,
                f"{drug.price:.2f}",
                drug.stock,
                drug.min_stock_threshold,
                drug.expiry_date.isoformat(),
                drug.description or "",
            ]
        )
    return UTF8_BOM + output.getvalue()
