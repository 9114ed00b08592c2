"""
Message types and binary codec for the ABX exchange protocol.

Requests are two bytes: a request type followed by a payload byte.
Responses are fixed 17-byte packets, big-endian:

    Symbol           4 bytes  ASCII, null padded
    BuySellIndicator 1 byte   ASCII 'B' or 'S'
    Quantity         4 bytes  int32
    Price            4 bytes  int32
    PacketSequence   4 bytes  int32
"""

from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import List, Optional, Union
import logging
import struct

logger = logging.getLogger(__name__)

PACKET_FORMAT = ">4sc3i"
PACKET_SIZE = struct.calcsize(PACKET_FORMAT)  # 17


class RequestType(IntEnum):
    """Request call types understood by the ABX server."""
    STREAM_ALL = 1
    RESEND = 2


class Side(Enum):
    """Buy/sell indicator carried in each packet."""
    BUY = 'B'
    SELL = 'S'


@dataclass(frozen=True)
class Record:
    """One decoded market event."""
    symbol: str
    side: Side
    quantity: int
    price: int  # Raw integer price, no scaling
    sequence: int

    def to_dict(self) -> dict:
        """Field names used by the JSON output."""
        return {
            "Symbol": self.symbol,
            "BuySellIndicator": self.side.value,
            "Quantity": self.quantity,
            "Price": self.price,
            "PacketSequence": self.sequence,
        }


@dataclass(frozen=True)
class StreamAll:
    """Request every packet the server currently holds."""


@dataclass(frozen=True)
class ResendBySequence:
    """
    Request a single packet by sequence number.

    The wire format has one byte for the sequence, so only
    sequence % 256 reaches the server: 0 and 256 are the same request.
    """
    sequence: int


Request = Union[StreamAll, ResendBySequence]


def encode_request(request: Request) -> bytes:
    """Serialize a request to its 2-byte wire format."""
    if isinstance(request, StreamAll):
        return bytes([RequestType.STREAM_ALL, 0])
    if isinstance(request, ResendBySequence):
        return bytes([RequestType.RESEND, request.sequence & 0xFF])
    raise TypeError(f"Unknown request type: {type(request).__name__}")


def decode_record(data: bytes) -> Optional[Record]:
    """
    Decode one 17-byte packet.

    Returns None if the block has the wrong length, the side is not
    'B' or 'S', the symbol is empty or not ASCII, or a numeric field
    is out of range (quantity >= 1, price >= 0, sequence >= 1).
    """
    if len(data) != PACKET_SIZE:
        return None

    raw_symbol, raw_side, quantity, price, sequence = struct.unpack(PACKET_FORMAT, data)

    try:
        symbol = raw_symbol.rstrip(b'\x00').decode('ascii')
        side = Side(raw_side.decode('ascii'))
    except (UnicodeDecodeError, ValueError):
        return None

    if not symbol:
        return None
    if quantity < 1:
        return None
    if price < 0:
        return None
    if sequence < 1:
        return None

    return Record(
        symbol=symbol,
        side=side,
        quantity=quantity,
        price=price,
        sequence=sequence
    )


def decode_stream(data: bytes) -> List[Record]:
    """
    Split a buffer into consecutive 17-byte packets and decode each one.

    Trailing bytes shorter than a packet are dropped. Invalid packets
    are skipped.
    """
    records = []
    full_length = len(data) - len(data) % PACKET_SIZE

    for offset in range(0, full_length, PACKET_SIZE):
        record = decode_record(data[offset:offset + PACKET_SIZE])
        if record is None:
            logger.debug(f"Skipping invalid packet at offset {offset}")
            continue
        records.append(record)

    if full_length < len(data):
        logger.debug(f"Dropping {len(data) - full_length} trailing bytes")

    return records


def encode_record(record: Record) -> bytes:
    """Serialize a record to its 17-byte wire format (used by the mock server)."""
    return struct.pack(
        PACKET_FORMAT,
        record.symbol.encode('ascii'),
        record.side.value.encode('ascii'),
        record.quantity,
        record.price,
        record.sequence
    )
