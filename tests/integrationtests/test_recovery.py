"""End-to-end recovery tests: ABXClient against MockABXServer."""

import json
import os
import sys

import pytest

import abx_client
from abx_client import ABXClient
from abx_mock_server import sample_records
from conftest import find_free_port
from messages import Record, Side


def sequences(records):
    return [r.sequence for r in records]


class TestEndToEnd:

    def test_full_stream_no_gaps(self, start_server, fast_config):
        server = start_server(sample_records(10))
        result = ABXClient(fast_config(server.port)).get_all_records()
        assert sequences(result) == list(range(1, 11))
        assert server.request_log == [b"\x01\x00"]

    def test_gap_recovered_by_resend(self, start_server, fast_config):
        records = [
            Record(symbol="MSFT", side=Side.BUY, quantity=100, price=25000, sequence=s)
            for s in (1, 2, 3, 4)
        ]
        server = start_server(records, withhold={3})

        result = ABXClient(fast_config(server.port)).get_all_records()

        assert sequences(result) == [1, 2, 3, 4]
        assert server.request_log == [b"\x01\x00", b"\x02\x03"]

    def test_multiple_gaps_recovered_in_order(self, start_server, fast_config):
        server = start_server(sample_records(14), withhold={3, 7, 8, 12})

        result = ABXClient(fast_config(server.port)).get_all_records()

        assert sequences(result) == list(range(1, 15))
        assert server.request_log[1:] == [b"\x02\x03", b"\x02\x07", b"\x02\x08", b"\x02\x0c"]

    def test_unavailable_sequence_stays_missing(self, start_server, fast_config):
        server = start_server(sample_records(5), withhold={2, 4}, unavailable={4})

        result = ABXClient(fast_config(server.port)).get_all_records()

        assert sequences(result) == [1, 2, 3, 5]

    def test_edge_gaps_not_recovered(self, start_server, fast_config):
        server = start_server(sample_records(6), withhold={1, 6})

        result = ABXClient(fast_config(server.port)).get_all_records()

        assert sequences(result) == [2, 3, 4, 5]
        assert server.request_log == [b"\x01\x00"]

    def test_stream_ended_by_idle_timeout(self, start_server, fast_config):
        server = start_server(sample_records(4), withhold={2}, hold_open=True)

        result = ABXClient(fast_config(server.port)).get_all_records()

        assert sequences(result) == [1, 2, 3, 4]

    def test_server_down_returns_empty(self, fast_config):
        result = ABXClient(fast_config(find_free_port())).get_all_records()
        assert result == []

    def test_server_down_exits_cleanly(self, fast_config):
        config = fast_config(find_free_port(), max_retries=1, exit_on_exhaustion=True)
        with pytest.raises(SystemExit) as exc_info:
            ABXClient(config).get_all_records()
        assert exc_info.value.code == 0


class TestMain:

    def test_main_writes_json(self, start_server, tmp_path, monkeypatch, capsys):
        server = start_server(sample_records(6), withhold={4})
        monkeypatch.setattr(sys, "argv", [
            "abx_client.py",
            "--port", str(server.port),
            "--read-timeout", "0.3",
            "--retry-delay", "0",
            "--output-dir", str(tmp_path),
        ])

        abx_client.main()

        files = os.listdir(tmp_path)
        assert len(files) == 1
        assert files[0].startswith("abx_data_") and files[0].endswith(".json")

        with open(tmp_path / files[0]) as f:
            data = json.load(f)
        assert [row["PacketSequence"] for row in data] == [1, 2, 3, 4, 5, 6]
        assert set(data[0]) == {"Symbol", "BuySellIndicator", "Quantity", "Price", "PacketSequence"}

        out = capsys.readouterr().out
        assert "Retrieved 6 packets" in out
        assert "Seq: 1, Symbol: MSFT" in out

    def test_main_no_packets(self, start_server, tmp_path, monkeypatch, capsys):
        server = start_server([])
        monkeypatch.setattr(sys, "argv", [
            "abx_client.py",
            "--port", str(server.port),
            "--read-timeout", "0.3",
            "--output-dir", str(tmp_path),
        ])

        abx_client.main()

        assert os.listdir(tmp_path) == []
        assert "No packets received." in capsys.readouterr().out
