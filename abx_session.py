"""
Single request/response round trip against the ABX server.

Every call opens its own TCP connection, sends one request, reads the
reply and closes the connection before returning.
"""

import logging
import socket
from typing import List, Optional

try:
    from .errors import TransientConnectionError
    from .messages import (
        PACKET_SIZE,
        Record,
        ResendBySequence,
        StreamAll,
        decode_record,
        decode_stream,
        encode_request,
    )
except ImportError:
    from errors import TransientConnectionError
    from messages import (
        PACKET_SIZE,
        Record,
        ResendBySequence,
        StreamAll,
        decode_record,
        decode_stream,
        encode_request,
    )

logger = logging.getLogger(__name__)

RECV_SIZE = 1024


class ABXSession:
    """
    Request-scoped client for the ABX binary protocol.

    No socket is kept between calls. Connection and I/O failures raise
    TransientConnectionError; short or malformed replies never raise.
    """

    def __init__(self, host: str, port: int,
                 read_timeout: float = 3.0,
                 connect_timeout: float = 3.0):
        self.host = host
        self.port = port
        self.read_timeout = read_timeout
        self.connect_timeout = connect_timeout

    def _connect(self) -> socket.socket:
        try:
            sock = socket.create_connection((self.host, self.port), timeout=self.connect_timeout)
        except OSError as e:
            raise TransientConnectionError(
                f"Failed to connect to {self.host}:{self.port}: {e}"
            ) from e
        sock.settimeout(self.read_timeout)
        return sock

    def _send(self, sock: socket.socket, payload: bytes) -> None:
        try:
            sock.sendall(payload)
        except OSError as e:
            raise TransientConnectionError(f"Failed to send request: {e}") from e

    def _read(self, sock: socket.socket, limit: Optional[int] = None) -> bytes:
        """
        Read until the peer closes, a recv sits idle for read_timeout,
        or limit bytes have arrived.
        """
        buffer = bytearray()

        while limit is None or len(buffer) < limit:
            want = RECV_SIZE if limit is None else limit - len(buffer)
            try:
                data = sock.recv(want)
            except socket.timeout:
                logger.debug(f"Read idle for {self.read_timeout}s, treating as end of stream")
                break
            except OSError as e:
                raise TransientConnectionError(f"Error reading from server: {e}") from e

            if not data:
                break
            buffer.extend(data)

        return bytes(buffer)

    def stream_all(self) -> List[Record]:
        """Request the full packet stream and decode whatever arrives."""
        sock = self._connect()
        try:
            self._send(sock, encode_request(StreamAll()))
            data = self._read(sock)
        finally:
            sock.close()

        records = decode_stream(data)
        logger.info(f"Received {len(data)} bytes, {len(records)} valid packets")
        return records

    def resend(self, sequence: int) -> Optional[Record]:
        """
        Request one packet by sequence.

        Returns None if fewer than 17 bytes arrive or the packet is invalid.
        """
        sock = self._connect()
        try:
            self._send(sock, encode_request(ResendBySequence(sequence)))
            data = self._read(sock, limit=PACKET_SIZE)
        finally:
            sock.close()

        if len(data) < PACKET_SIZE:
            logger.debug(f"Short resend reply for sequence {sequence}: {len(data)} bytes")
            return None

        return decode_record(data)
