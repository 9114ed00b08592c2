"""
JSON output for recovered packets.
"""

import json
import logging
import os
from datetime import datetime
from typing import Iterable, Optional

try:
    from .messages import Record
except ImportError:
    from messages import Record

logger = logging.getLogger(__name__)


def default_output_path(directory: str = ".", now: Optional[datetime] = None) -> str:
    """abx_data_YYYYMMDD_HHMMSS.json inside directory."""
    now = now or datetime.now()
    return os.path.join(directory, f"abx_data_{now:%Y%m%d_%H%M%S}.json")


def write_records(records: Iterable[Record], path: str) -> str:
    """Write records, in the given order, as a JSON array. Returns path."""
    rows = [record.to_dict() for record in records]
    with open(path, 'w') as f:
        json.dump(rows, f, indent=2)
    logger.info(f"Wrote {len(rows)} packets to {path}")
    return path


def format_record(record: Record) -> str:
    """One-line summary for console output."""
    return (f"Seq: {record.sequence}, Symbol: {record.symbol}, {record.side.value}, "
            f"Qty: {record.quantity}, Price: {record.price}")
