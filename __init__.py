"""
ABX Exchange Client

A client for the ABX exchange simulator's binary TCP protocol:
- Fixed 17-byte big-endian packet codec
- One TCP connection per request (stream all / resend by sequence)
- Fixed-delay retry on connection failures
- Sequence gap detection and per-packet recovery
"""

from .errors import ABXClientError, RetryExhaustedError, TransientConnectionError
from .messages import (
    PACKET_SIZE,
    RequestType,
    Side,
    Record,
    StreamAll,
    ResendBySequence,
    encode_request,
    encode_record,
    decode_record,
    decode_stream,
)
from .result_set import ResultSet
from .retry_policy import with_retry
from .abx_session import ABXSession
from .abx_client import ABXClient, ClientConfig
from .result_writer import default_output_path, format_record, write_records
from .abx_mock_server import MockABXServer

__all__ = [
    'ABXClientError',
    'RetryExhaustedError',
    'TransientConnectionError',
    'PACKET_SIZE',
    'RequestType',
    'Side',
    'Record',
    'StreamAll',
    'ResendBySequence',
    'encode_request',
    'encode_record',
    'decode_record',
    'decode_stream',
    'ResultSet',
    'with_retry',
    'ABXSession',
    'ABXClient',
    'ClientConfig',
    'default_output_path',
    'format_record',
    'write_records',
    'MockABXServer',
]
