"""
Sequence-keyed collection of decoded records.

Keeps records sorted by PacketSequence so gap detection and ordered
output don't need a separate sort.
"""

from typing import Iterable, List, Optional
from sortedcontainers import SortedDict

try:
    from .messages import Record
except ImportError:
    from messages import Record


class ResultSet:
    """
    Mapping of sequence -> Record.

    Inserting a record whose sequence is already present replaces the
    earlier record, so duplicate deliveries collapse to the latest one.
    """

    def __init__(self, records: Iterable[Record] = ()):
        self._records: SortedDict = SortedDict()
        self.add_all(records)

    def add(self, record: Record) -> None:
        """Insert or replace the record for record.sequence."""
        self._records[record.sequence] = record

    def add_all(self, records: Iterable[Record]) -> None:
        for record in records:
            self.add(record)

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, sequence: int) -> bool:
        return sequence in self._records

    def get(self, sequence: int) -> Optional[Record]:
        return self._records.get(sequence)

    def missing_sequences(self) -> List[int]:
        """
        Sequences between the lowest and highest received that are absent.

        Nothing below the minimum or above the maximum is reported; the
        protocol gives no signal of the true range. Empty set -> [].
        """
        if not self._records:
            return []

        min_seq = self._records.keys()[0]
        max_seq = self._records.keys()[-1]
        return [seq for seq in range(min_seq, max_seq + 1) if seq not in self._records]

    def ordered(self) -> List[Record]:
        """Records in ascending sequence order."""
        return list(self._records.values())
