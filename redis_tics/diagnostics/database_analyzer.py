"""Keyspace sampling.

Walks SCAN from the start cursor and inspects at most ``sample_size`` keys
(TYPE, TTL, MEMORY USAGE), folding them into per-type, per-namespace and
TTL-horizon aggregates. Only the first SCAN is required to succeed; every
per-key lookup is best-effort.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Dict, List, Optional

from redis_tics.core.config import settings
from redis_tics.core.errors import CommandError, ServerConnectionError
from redis_tics.models.analysis import (
    DatabaseAnalysisReport,
    ExpiryAnalysis,
    KeyMemoryInfo,
    NamespaceInfo,
    TypeDistribution,
    TypeMemory,
)
from redis_tics.parsers.fields import parse_int, to_text

if TYPE_CHECKING:
    from .dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)

SCAN_START = "0"
NAMESPACE_SEPARATOR = ":"
HOUR = 3600
DAY = 86400
WEEK = 604800
ONE_MB = 1024 * 1024

TTL_RECOMMENDATION = "Consider setting TTL on keys to prevent memory growth"


def namespace_of(key: str) -> str:
    """Prefix before the first ``:``, or the whole key when there is none."""
    return key.split(NAMESPACE_SEPARATOR, 1)[0]


def _percentage(part: int, total: int) -> float:
    return part / total * 100.0 if total > 0 else 0.0


@dataclass
class _Accumulator:
    type_counts: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    type_memory: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    namespace_counts: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    namespace_memory: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    expiry: ExpiryAnalysis = field(default_factory=ExpiryAnalysis)
    keys: List[KeyMemoryInfo] = field(default_factory=list)
    total_memory: int = 0

    def add(self, key: str, key_type: str, ttl: int, memory: int) -> None:
        self.type_counts[key_type] += 1
        self.type_memory[key_type] += memory
        self.total_memory += memory

        if ttl > 0:
            self.expiry.keys_with_ttl += 1
            if ttl <= HOUR:
                self.expiry.expiring_in_1h += 1
                self.expiry.memory_to_free_1h += memory
            if ttl <= DAY:
                self.expiry.expiring_in_24h += 1
                self.expiry.memory_to_free_24h += memory
            if ttl <= WEEK:
                self.expiry.expiring_in_7d += 1
        else:
            self.expiry.keys_without_ttl += 1

        namespace = namespace_of(key)
        self.namespace_counts[namespace] += 1
        self.namespace_memory[namespace] += memory

        self.keys.append(KeyMemoryInfo(key=key, key_type=key_type, memory_bytes=memory, ttl=ttl))

    def report(self, sampled: int, top_n: int, large_key_threshold: int) -> DatabaseAnalysisReport:
        type_distribution = [
            TypeDistribution(key_type=t, count=c, percentage=_percentage(c, sampled))
            for t, c in sorted(self.type_counts.items(), key=lambda item: (-item[1], item[0]))
        ]
        memory_by_type = [
            TypeMemory(key_type=t, memory_bytes=m, percentage=_percentage(m, self.total_memory))
            for t, m in sorted(self.type_memory.items(), key=lambda item: (-item[1], item[0]))
        ]
        namespaces = sorted(
            (
                NamespaceInfo(namespace=ns, key_count=count, memory_bytes=self.namespace_memory[ns])
                for ns, count in self.namespace_counts.items()
            ),
            key=lambda info: info.memory_bytes,
            reverse=True,
        )[:top_n]
        top_keys = sorted(self.keys, key=lambda info: info.memory_bytes, reverse=True)[:top_n]

        recommendations = []
        if self.expiry.keys_without_ttl > self.expiry.keys_with_ttl:
            recommendations.append(TTL_RECOMMENDATION)
        if top_keys and top_keys[0].memory_bytes > large_key_threshold:
            largest = top_keys[0]
            recommendations.append(
                f"Large key detected: {largest.key} ({largest.memory_bytes // ONE_MB} MB)"
            )

        return DatabaseAnalysisReport(
            total_keys=sampled,
            total_memory=self.total_memory,
            type_distribution=type_distribution,
            memory_by_type=memory_by_type,
            expiry_analysis=self.expiry,
            top_keys_by_memory=top_keys,
            namespaces=namespaces,
            recommendations=recommendations,
        )


async def analyze_database(
    dispatcher: "CommandDispatcher", server_id: str, sample_size: Optional[int] = None
) -> DatabaseAnalysisReport:
    """Sample up to ``sample_size`` keys of ``server_id`` and summarise them.

    Raises:
        NotConnectedError: if the server has no live session
        CommandError: if the very first SCAN fails
    """
    if sample_size is None:
        sample_size = settings.analysis_default_sample_size

    acc = _Accumulator()
    sampled = 0
    cursor = SCAN_START
    first_batch = True

    while sampled < sample_size:
        try:
            reply = await dispatcher.call(
                server_id, "SCAN", cursor, "COUNT", settings.scan_batch_size
            )
        except (CommandError, ServerConnectionError) as e:
            if first_batch:
                raise
            logger.warning(f"SCAN failed on {server_id} after {sampled} keys, stopping: {e}")
            break
        first_batch = False

        cursor = to_text(reply[0]) if isinstance(reply, (list, tuple)) and reply else "0"
        keys = reply[1] if isinstance(reply, (list, tuple)) and len(reply) > 1 else []

        for raw_key in keys or []:
            if sampled >= sample_size:
                break
            sampled += 1
            key = to_text(raw_key)
            key_type = await dispatcher.best_effort(server_id, "TYPE", key, default="unknown")
            ttl = await dispatcher.best_effort(server_id, "TTL", key, default=-1)
            memory = await dispatcher.best_effort(
                server_id, "MEMORY", "USAGE", key, "SAMPLES", 0, default=0
            )
            acc.add(key, to_text(key_type) or "unknown", parse_int(ttl, -1), parse_int(memory))

        if cursor == "0":
            break

    logger.info(f"Sampled {sampled} keys on {server_id}")
    return acc.report(sampled, settings.analysis_top_n, settings.large_key_threshold_bytes)
