#!/usr/bin/env python3
"""
ABX Client - Fetches the full packet stream from the ABX exchange server
and recovers missing packets.

Flow:
  1. Request every packet (call type 1), retrying on connection errors
  2. Find gaps between the lowest and highest sequence received
  3. Re-request each missing sequence (call type 2), one at a time
  4. Write the packets, ordered by sequence, to abx_data_<timestamp>.json

Usage:
    python abx_client.py
    python abx_client.py --host 127.0.0.1 --port 3000 --output-dir out/
"""

import argparse
import logging
import sys
from dataclasses import dataclass
from typing import Callable, List, Optional

try:
    from .abx_session import ABXSession
    from .errors import RetryExhaustedError
    from .messages import Record
    from .result_set import ResultSet
    from .result_writer import default_output_path, format_record, write_records
    from .retry_policy import with_retry
except ImportError:
    from abx_session import ABXSession
    from errors import RetryExhaustedError
    from messages import Record
    from result_set import ResultSet
    from result_writer import default_output_path, format_record, write_records
    from retry_policy import with_retry

logger = logging.getLogger(__name__)

# Resend requests carry one byte of sequence
MAX_RESENDABLE_SEQUENCE = 255


@dataclass
class ClientConfig:
    """Connection and retry settings for ABXClient."""
    host: str = "127.0.0.1"
    port: int = 3000
    read_timeout: float = 3.0  # Idle seconds before a read counts as end of stream
    connect_timeout: float = 3.0
    max_retries: int = 3  # Retries after the first stream-all attempt
    retry_delay: float = 2.0
    resend_retries: int = 0  # Retries after the first attempt of each resend
    exit_on_exhaustion: bool = True


class ABXClient:
    """
    Recovers a complete, ordered packet set from the ABX server.

    All requests are issued sequentially: the stream-all request finishes
    before any resend starts, and resends go out in ascending order.
    """

    def __init__(self, config: Optional[ClientConfig] = None,
                 session_factory: Callable[..., ABXSession] = ABXSession,
                 sleep: Optional[Callable[[float], None]] = None):
        self.config = config or ClientConfig()
        self._session_factory = session_factory
        self._retry_kwargs = {} if sleep is None else {"sleep": sleep}

    def _new_session(self) -> ABXSession:
        return self._session_factory(
            self.config.host,
            self.config.port,
            read_timeout=self.config.read_timeout,
            connect_timeout=self.config.connect_timeout
        )

    def _fetch_stream(self) -> List[Record]:
        return with_retry(
            lambda: self._new_session().stream_all(),
            max_attempts=self.config.max_retries,
            delay=self.config.retry_delay,
            exit_on_exhaustion=self.config.exit_on_exhaustion,
            **self._retry_kwargs
        )

    def _fetch_missing(self, sequence: int) -> Optional[Record]:
        try:
            return with_retry(
                lambda: self._new_session().resend(sequence),
                max_attempts=self.config.resend_retries,
                delay=self.config.retry_delay,
                exit_on_exhaustion=False,
                **self._retry_kwargs
            )
        except RetryExhaustedError as e:
            logger.warning(f"Resend of sequence {sequence} failed: {e}")
            return None

    def get_all_records(self) -> List[Record]:
        """
        Run the full fetch-and-recover cycle.

        Returns records in ascending sequence order; [] if the server
        could not be reached or sent nothing.
        """
        try:
            initial = self._fetch_stream()
        except RetryExhaustedError:
            logger.error("Unable to connect to server after multiple attempts.")
            return []

        results = ResultSet(initial)
        if not results:
            logger.info("Server returned no packets")
            return []

        missing = results.missing_sequences()
        if not missing:
            logger.info(f"Received {len(results)} packets with no gaps")
            return results.ordered()

        logger.info(f"Received {len(results)} packets, {len(missing)} missing: {missing}")

        for sequence in missing:
            if sequence > MAX_RESENDABLE_SEQUENCE:
                logger.warning(
                    f"Sequence {sequence} exceeds {MAX_RESENDABLE_SEQUENCE}; "
                    f"resend request byte wraps to {sequence & 0xFF}"
                )

            record = self._fetch_missing(sequence)
            if record is not None:
                results.add(record)
                if record.sequence != sequence:
                    logger.warning(
                        f"Resend of sequence {sequence} returned sequence {record.sequence}"
                    )

            if sequence in results:
                logger.debug(f"Recovered sequence {sequence}")
            else:
                logger.warning(f"Sequence {sequence} unavailable")

        unrecovered = [seq for seq in missing if seq not in results]
        if unrecovered:
            logger.warning(f"{len(unrecovered)} sequences still missing: {unrecovered}")

        logger.info(f"Recovered {len(missing) - len(unrecovered)} of {len(missing)} missing packets")
        return results.ordered()


def _non_negative_int(s: str) -> int:
    """argparse type: integer >= 0."""
    try:
        value = int(s)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid count '{s}'. Expected an integer")
    if value < 0:
        raise argparse.ArgumentTypeError(f"Invalid count '{s}'. Must be >= 0")
    return value


def main():
    parser = argparse.ArgumentParser(
        description='ABX Client - Fetch and recover the ABX exchange packet stream',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Wire format:
  Request:  2 bytes  callType (1=stream all, 2=resend) + resendSeq (0-255)
  Response: 17 bytes per packet, big-endian
            Symbol(4) BuySellIndicator(1) Quantity(4) Price(4) PacketSequence(4)

Output: abx_data_YYYYMMDD_HHMMSS.json in --output-dir
"""
    )
    parser.add_argument('--host', default='127.0.0.1',
                        help='ABX server host (default: 127.0.0.1)')
    parser.add_argument('--port', type=int, default=3000,
                        help='ABX server port (default: 3000)')
    parser.add_argument('--read-timeout', type=float, default=3.0, metavar='SECONDS',
                        help='Idle read timeout; ends the packet stream (default: 3.0)')
    parser.add_argument('--connect-timeout', type=float, default=3.0, metavar='SECONDS',
                        help='Connection timeout (default: 3.0)')
    parser.add_argument('--retries', type=_non_negative_int, default=3, metavar='N',
                        help='Retries for the initial stream request (default: 3)')
    parser.add_argument('--retry-delay', type=float, default=2.0, metavar='SECONDS',
                        help='Delay between retries (default: 2.0)')
    parser.add_argument('--resend-retries', type=_non_negative_int, default=0, metavar='N',
                        help='Retries for each resend request (default: 0)')
    parser.add_argument('--output-dir', default='.',
                        help='Directory for the JSON output (default: .)')
    parser.add_argument('-v', '--verbose', action='store_true',
                        help='Enable debug logging')
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    config = ClientConfig(
        host=args.host,
        port=args.port,
        read_timeout=args.read_timeout,
        connect_timeout=args.connect_timeout,
        max_retries=args.retries,
        retry_delay=args.retry_delay,
        resend_retries=args.resend_retries
    )

    try:
        records = ABXClient(config).get_all_records()
    except KeyboardInterrupt:
        print("\nInterrupted.")
        sys.exit(1)

    if not records:
        print("No packets received.")
        return

    path = write_records(records, default_output_path(args.output_dir))

    print(f"Retrieved {len(records)} packets")
    print(f"Saved to: {path}")
    for record in records[:5]:
        print(format_record(record))


if __name__ == '__main__':
    main()
