"""
CSV reader for conversion import files.

Turns a header-driven CSV such as

    affiliate_id,total_conversion
    user123,10
    user456,5

into `(affiliate_id, delta)` string pairs for `ConversionMerger`. Values are
stripped; missing cells become "" so the merger can reject them per row.
"""

import csv
import io
from pathlib import Path
from typing import List, Tuple, Union

AFFILIATE_COLUMN = "affiliate_id"
DELTA_COLUMN = "total_conversion"


def read_conversion_rows(text: str) -> List[Tuple[str, str]]:
    if not text or not text.strip():
        return []
    reader = csv.DictReader(io.StringIO(text.strip()), skipinitialspace=True)
    if reader.fieldnames:
        reader.fieldnames = [name.strip() for name in reader.fieldnames]
    rows = []
    for record in reader:
        rows.append((
            (record.get(AFFILIATE_COLUMN) or "").strip(),
            (record.get(DELTA_COLUMN) or "").strip(),
        ))
    return rows


def read_conversion_file(path: Union[str, Path]) -> List[Tuple[str, str]]:
    """Read a UTF-8 conversion CSV from disk (BOM tolerated)."""
    return read_conversion_rows(Path(path).read_text(encoding="utf-8-sig"))
