#!/usr/bin/env python3
"""
Mock ABX Server - Serves a fixed set of packets over the ABX binary protocol.

Accepts one request per connection:
  0x01 0x00  stream all: send every packet not withheld, then close
  0x02 n     resend: send the packet whose sequence % 256 == n, then close

Usage:
    python abx_mock_server.py --port 3000 --count 14 --withhold 3 7
"""

import argparse
import logging
import signal
import socket
import sys
import threading
import time
from typing import Iterable, List, Optional

try:
    from .messages import PACKET_SIZE, Record, RequestType, Side, encode_record
except ImportError:
    from messages import PACKET_SIZE, Record, RequestType, Side, encode_record

logger = logging.getLogger(__name__)

REQUEST_SIZE = 2


class MockABXServer:
    """
    Threaded TCP server imitating the ABX exchange.

    Each connection gets its own handler thread. Port 0 binds an
    ephemeral port; read it back from .port after start().
    """

    def __init__(
        self,
        records: Iterable[Record],
        port: int = 0,
        withhold: Iterable[int] = (),
        unavailable: Iterable[int] = (),
        hold_open: bool = False,
        extra_bytes: bytes = b""
    ):
        """
        Initialize the mock server.

        Args:
            records: Packets the server knows about
            port: TCP port to listen on (0 = ephemeral)
            withhold: Sequences left out of the stream-all reply
            unavailable: Sequences that resend requests never return
            hold_open: Keep stream-all connections open after sending,
                so the client must rely on its idle timeout
            extra_bytes: Raw bytes appended to the stream-all reply
        """
        self.port = port
        self._records: List[Record] = list(records)
        self._withhold = set(withhold)
        self._unavailable = set(unavailable)
        self._hold_open = hold_open
        self._extra_bytes = extra_bytes

        self.request_log: List[bytes] = []
        self._log_lock = threading.Lock()

        self._server_socket: Optional[socket.socket] = None
        self._running = False
        self._accept_thread: Optional[threading.Thread] = None

    def start(self) -> bool:
        """Start the server. Returns True on success."""
        try:
            self._server_socket = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
            self._server_socket.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            self._server_socket.bind(('127.0.0.1', self.port))
            self._server_socket.listen(10)
            self._server_socket.settimeout(1.0)  # For graceful shutdown
            self.port = self._server_socket.getsockname()[1]

            self._running = True
            self._accept_thread = threading.Thread(target=self._accept_loop, daemon=True)
            self._accept_thread.start()

            logger.info(f"Mock ABX server started on port {self.port}")
            return True

        except OSError as e:
            logger.error(f"Failed to start mock ABX server: {e}")
            if self._server_socket:
                self._server_socket.close()
                self._server_socket = None
            return False

    def stop(self) -> None:
        """Stop the server."""
        self._running = False

        if self._accept_thread:
            self._accept_thread.join(timeout=2.0)
            self._accept_thread = None

        if self._server_socket:
            try:
                self._server_socket.close()
            except OSError:
                pass
            self._server_socket = None

        logger.info("Mock ABX server stopped")

    def _accept_loop(self) -> None:
        """Accept new connections (runs in its own thread)."""
        while self._running:
            try:
                client_socket, addr = self._server_socket.accept()
                handler_thread = threading.Thread(
                    target=self._handle_client,
                    args=(client_socket,),
                    daemon=True
                )
                handler_thread.start()
                logger.debug(f"Client connected from {addr}")

            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")

    def _handle_client(self, client_socket: socket.socket) -> None:
        """Read one request, reply, close (runs in per-client thread)."""
        client_socket.settimeout(1.0)
        request = b""

        try:
            while len(request) < REQUEST_SIZE:
                data = client_socket.recv(REQUEST_SIZE - len(request))
                if not data:
                    return
                request += data

            with self._log_lock:
                self.request_log.append(request)

            call_type, resend_seq = request[0], request[1]

            if call_type == RequestType.STREAM_ALL:
                client_socket.sendall(self._stream_payload())
                if self._hold_open:
                    # Client ends the stream via its idle timeout
                    while self._running:
                        try:
                            if not client_socket.recv(1):
                                break
                        except socket.timeout:
                            continue
            elif call_type == RequestType.RESEND:
                record = self._find_resend(resend_seq)
                if record is not None:
                    client_socket.sendall(encode_record(record))
            else:
                logger.warning(f"Unknown call type {call_type}")

        except OSError as e:
            logger.debug(f"Client error: {e}")
        finally:
            try:
                client_socket.close()
            except OSError:
                pass

    def _stream_payload(self) -> bytes:
        packets = [encode_record(r) for r in self._records if r.sequence not in self._withhold]
        return b"".join(packets) + self._extra_bytes

    def _find_resend(self, resend_seq: int) -> Optional[Record]:
        for record in self._records:
            if record.sequence % 256 == resend_seq and record.sequence not in self._unavailable:
                return record
        return None


def sample_records(count: int) -> List[Record]:
    """Deterministic feed of count packets with sequences 1..count."""
    symbols = ["MSFT", "AAPL", "AMZN", "META"]
    return [
        Record(
            symbol=symbols[i % len(symbols)],
            side=Side.BUY if i % 2 == 0 else Side.SELL,
            quantity=50 + 10 * i,
            price=100 + 5 * i,
            sequence=i + 1
        )
        for i in range(count)
    ]


def main():
    parser = argparse.ArgumentParser(description='Mock ABX exchange server')
    parser.add_argument('--port', type=int, default=3000,
                        help='TCP port (default: 3000)')
    parser.add_argument('--count', type=int, default=14,
                        help=f'Number of {PACKET_SIZE}-byte packets to serve (default: 14)')
    parser.add_argument('--withhold', type=int, nargs='*', default=[], metavar='SEQ',
                        help='Sequences omitted from the stream-all reply')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    server = MockABXServer(sample_records(args.count), port=args.port, withhold=args.withhold)

    def signal_handler(signum, frame):
        print()
        logger.info(f"Received signal {signum}, shutting down...")
        server.stop()
        sys.exit(0)

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)

    if not server.start():
        sys.exit(1)

    while True:
        time.sleep(1.0)


if __name__ == '__main__':
    main()
