"""Tests for client list heuristics."""

import pytest

from redis_tics.core.config import Settings
from redis_tics.diagnostics.client_analyzer import analyze_client_list
from redis_tics.models.info import ClientRecord

from conftest import SERVER_ID, FakeRedis


def _client(n: int, **fields) -> ClientRecord:
    defaults = dict(
        id=str(n), addr=f"10.0.0.{n}:500{n}", ip=f"10.0.0.{n}", port=f"500{n}", age=10, cmd="get"
    )
    defaults.update(fields)
    return ClientRecord(**defaults)


class TestIdleClients:
    """Test idle and mostly-idle detection."""

    def test_idle_for_whole_connection(self):
        """Test a client idle for its whole life is idle and mostly idle."""
        report = analyze_client_list([_client(1, idle=301, age=301)])

        assert [c.id for c in report.idle_clients] == ["1"]
        assert report.idle_clients[0].idle_seconds == 301
        assert report.idle_clients[0].connected_seconds == 301
        assert len(report.anomalies) == 1
        anomaly = report.anomalies[0]
        assert anomaly.anomaly_type == "Mostly Idle"
        assert anomaly.details == "Client idle 100% of connection time"
        assert anomaly.severity == "warning"

    def test_recently_active_client(self):
        """Test a client idle below the threshold and ratio."""
        report = analyze_client_list([_client(1, idle=50, age=301)])

        assert report.idle_clients == []
        assert report.anomalies == []

    def test_threshold_is_exclusive(self):
        """Test that exactly the threshold is not idle."""
        report = analyze_client_list([_client(1, idle=300, age=10000)])
        assert report.idle_clients == []

    def test_zero_age_has_no_ratio(self):
        """Test that a brand new client is never mostly idle."""
        report = analyze_client_list([_client(1, idle=0, age=0)])
        assert report.anomalies == []

    def test_custom_thresholds(self):
        """Test that thresholds come from the given settings."""
        config = Settings(client_idle_threshold_seconds=10, mostly_idle_ratio=0.5)
        report = analyze_client_list([_client(1, idle=20, age=30)], config)

        assert len(report.idle_clients) == 1
        assert report.anomalies[0].details == "Client idle 66% of connection time"


class TestBuffers:
    """Test high-buffer detection."""

    def test_query_and_output_buffers(self):
        """Test that either buffer above the threshold flags the client."""
        big = 2 * 1024 * 1024
        report = analyze_client_list(
            [_client(1, qbuf=big), _client(2, obl=big), _client(3, qbuf=100, obl=100)]
        )

        assert [c.id for c in report.high_memory_clients] == ["1", "2"]
        assert report.high_memory_clients[0].query_buffer_bytes == big
        assert report.high_memory_clients[1].output_buffer_bytes == big


class TestCommandGroups:
    """Test grouping by last command."""

    def test_groups_sorted_by_size(self):
        """Test that groups list client IPs and are ordered by size."""
        report = analyze_client_list(
            [_client(1, cmd="get"), _client(2, cmd="set"), _client(3, cmd="get")]
        )

        groups = [(g.command, g.client_count, g.client_ips) for g in report.clients_by_command]
        assert groups == [("get", 2, ["10.0.0.1", "10.0.0.3"]), ("set", 1, ["10.0.0.2"])]

    def test_ip_list_truncated(self):
        """Test that at most client_display_limit addresses are listed."""
        report = analyze_client_list([_client(n) for n in range(1, 13)])

        group = report.clients_by_command[0]
        assert group.client_count == 12
        assert len(group.client_ips) == 10


class TestSuspiciousPatterns:
    """Test suspicious connection patterns."""

    def test_connect_only(self):
        """Test clients that never ran a command."""
        report = analyze_client_list([_client(1, cmd="NULL"), _client(2, cmd=""), _client(3)])

        patterns = {p.pattern_type: p for p in report.suspicious_patterns}
        assert "Connect Only" in patterns
        assert patterns["Connect Only"].description == (
            "2 clients connected but never executed commands"
        )
        assert patterns["Connect Only"].affected_clients == ["10.0.0.1:5001", "10.0.0.2:5002"]

    def test_high_idle_rate(self):
        """Test that a majority of idle clients is reported when there are enough clients."""
        clients = [_client(n, idle=400, age=1000) for n in range(1, 7)]
        report = analyze_client_list(clients)

        patterns = {p.pattern_type: p for p in report.suspicious_patterns}
        assert patterns["High Idle Rate"].description == "100% of clients are idle for >5 minutes"

    def test_high_idle_rate_needs_enough_clients(self):
        """Test that a handful of idle clients is not a pattern."""
        clients = [_client(n, idle=400, age=1000) for n in range(1, 6)]
        report = analyze_client_list(clients)

        assert all(p.pattern_type != "High Idle Rate" for p in report.suspicious_patterns)

    def test_empty_list(self):
        """Test an empty client list."""
        report = analyze_client_list([])

        assert report.total_clients == 0
        assert report.suspicious_patterns == []
        assert report.clients_by_command == []


class TestAnalyzeClientsOperation:
    """Test the dispatcher operation."""

    @pytest.mark.asyncio
    async def test_analyze_clients(self, connect):
        """Test analysis of a live CLIENT LIST."""
        fake = FakeRedis(
            {
                ("CLIENT", "LIST"): (
                    "id=1 addr=10.0.0.1:1 age=301 idle=301 cmd=NULL\n"
                    "id=2 addr=10.0.0.2:2 age=301 idle=50 cmd=get\n"
                )
            }
        )
        _, dispatcher = await connect(fake)

        report = await dispatcher.analyze_clients(SERVER_ID)

        assert report.total_clients == 2
        assert [c.addr for c in report.idle_clients] == ["10.0.0.1:1"]
        assert [a.client_addr for a in report.anomalies] == ["10.0.0.1:1"]
