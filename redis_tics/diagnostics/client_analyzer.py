"""Client list heuristics: idle and high-buffer clients, command fan-out, suspicious patterns."""

from collections import defaultdict
from typing import Dict, List, Optional

from redis_tics.core.config import Settings, settings
from redis_tics.models.analysis import (
    ClientAnalysisReport,
    ClientAnomaly,
    ClientMemoryInfo,
    CommandClientInfo,
    IdleClient,
    SuspiciousPattern,
)
from redis_tics.models.info import ClientRecord

NO_COMMAND = ("", "NULL")
WARNING = "warning"


def _mostly_idle(client: ClientRecord, ratio: float) -> Optional[ClientAnomaly]:
    if client.age <= 0:
        return None
    idle_ratio = client.idle / client.age
    if idle_ratio <= ratio:
        return None
    return ClientAnomaly(
        anomaly_type="Mostly Idle",
        client_addr=client.addr,
        details=f"Client idle {int(idle_ratio * 100)}% of connection time",
        severity=WARNING,
    )


def analyze_client_list(
    clients: List[ClientRecord], config: Optional[Settings] = None
) -> ClientAnalysisReport:
    """Classify one CLIENT LIST snapshot.

    Args:
        clients: Parsed client records
        config: Thresholds to use; defaults to the global settings

    Returns:
        ClientAnalysisReport
    """
    config = config or settings
    limit = config.client_display_limit

    idle_clients: List[IdleClient] = []
    high_memory: List[ClientMemoryInfo] = []
    by_command: Dict[str, List[str]] = defaultdict(list)
    connect_only: List[str] = []
    idle_addrs: List[str] = []
    anomalies: List[ClientAnomaly] = []

    for client in clients:
        if client.idle > config.client_idle_threshold_seconds:
            idle_clients.append(
                IdleClient(
                    id=client.id,
                    addr=client.addr,
                    idle_seconds=client.idle,
                    last_command=client.cmd,
                    connected_seconds=client.age,
                )
            )
            idle_addrs.append(client.addr)

        threshold = config.client_buffer_threshold_bytes
        if client.qbuf > threshold or client.obl > threshold:
            high_memory.append(
                ClientMemoryInfo(
                    id=client.id,
                    addr=client.addr,
                    output_buffer_bytes=client.obl,
                    query_buffer_bytes=client.qbuf,
                )
            )

        by_command[client.cmd].append(client.ip)

        if client.cmd in NO_COMMAND:
            connect_only.append(client.addr)

        anomaly = _mostly_idle(client, config.mostly_idle_ratio)
        if anomaly is not None:
            anomalies.append(anomaly)

    patterns: List[SuspiciousPattern] = []
    if connect_only:
        patterns.append(
            SuspiciousPattern(
                pattern_type="Connect Only",
                severity=WARNING,
                description=f"{len(connect_only)} clients connected but never executed commands",
                affected_clients=connect_only[:limit],
                recommendation="Check if these are health checks or misconfigured clients",
            )
        )

    total = len(clients)
    if len(idle_addrs) > total // 2 and total > config.high_idle_min_clients:
        minutes = config.client_idle_threshold_seconds // 60
        percent = len(idle_addrs) * 100 // total
        patterns.append(
            SuspiciousPattern(
                pattern_type="High Idle Rate",
                severity=WARNING,
                description=f"{percent}% of clients are idle for >{minutes} minutes",
                affected_clients=idle_addrs[:limit],
                recommendation="Consider connection pooling or reducing idle timeout",
            )
        )

    clients_by_command = [
        CommandClientInfo(command=cmd, client_count=len(ips), client_ips=ips[:limit])
        for cmd, ips in sorted(by_command.items(), key=lambda item: (-len(item[1]), item[0]))
    ]

    return ClientAnalysisReport(
        total_clients=total,
        idle_clients=idle_clients,
        high_memory_clients=high_memory,
        clients_by_command=clients_by_command,
        suspicious_patterns=patterns,
        anomalies=anomalies,
    )
