"""
Domain service: yield history CSV parsing.
"""
import io
from datetime import datetime, timezone
from typing import Optional

import numpy as np
import pandas as pd

from app.domain.exceptions import InvalidInput
from app.domain.models import YieldEntry, YieldHistory, YieldSummary

YIELD_COLUMNS = ("yield", "yield_t_ha", "yield_kg_ha")


def parse_yield_csv(text: str, now: Optional[datetime] = None) -> YieldHistory:
    """
    Parse a yield history CSV.

    The header must contain ``year`` and one of ``yield``, ``yield_t_ha`` or
    ``yield_kg_ha`` (case-insensitive); ``crop`` is optional. Rows whose year
    or yield is not numeric are skipped.

    Args:
        text: CSV document
        now: Timestamp for the summary (defaults to the current UTC time)

    Returns:
        YieldHistory with entries in file order

    Raises:
        InvalidInput: If the header or data rows are missing
    """
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            dtype=str,
            skipinitialspace=True,
            skip_blank_lines=True,
        )
    except (pd.errors.EmptyDataError, pd.errors.ParserError) as e:
        raise InvalidInput(f"Could not read CSV: {str(e)}") from e

    if frame.empty:
        raise InvalidInput("CSV must include header and at least one row")

    frame.columns = [str(column).strip().lower() for column in frame.columns]
    yield_column = next((c for c in frame.columns if c in YIELD_COLUMNS), None)
    if "year" not in frame.columns or yield_column is None:
        raise InvalidInput("CSV headers must include 'year' and 'yield'")

    years = pd.to_numeric(frame["year"].str.strip(), errors="coerce")
    yields = pd.to_numeric(frame[yield_column].str.strip(), errors="coerce")
    crops = frame["crop"].str.strip() if "crop" in frame.columns else None

    valid = np.isfinite(years) & np.isfinite(yields)
    entries = []
    for index in frame.index[valid.to_numpy()]:
        crop = crops[index] if crops is not None else None
        entries.append(YieldEntry(
            year=int(years[index]),
            yield_amount=float(yields[index]),
            crop=crop if isinstance(crop, str) and crop else None,
        ))

    entry_years = [entry.year for entry in entries]
    summary = YieldSummary(
        entries=len(entries),
        earliest_year=min(entry_years) if entry_years else None,
        latest_year=max(entry_years) if entry_years else None,
        updated_at=now or datetime.now(timezone.utc),
    )
    return YieldHistory(entries=entries, summary=summary)
