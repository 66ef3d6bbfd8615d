"""Parsers for INFO-style ``key:value`` text replies."""

import re
from typing import Any, Dict, List, Optional, Tuple

from redis_tics.models.info import (
    ClusterInfo,
    CommandStat,
    CpuStats,
    ErrorStat,
    InfoSnapshot,
    KeyspaceDb,
    MemorySection,
    PersistenceInfo,
    ReplicationSection,
    ServerSection,
    StatsSection,
)

from .fields import FieldMap, fold_lines, parse_float, parse_int, split_pairs, to_text

KEYSPACE_LINE = re.compile(r"^db\d+$")
COMMAND_STAT_PREFIX = "cmdstat_"
ERROR_STAT_PREFIX = "errorstat_"


def parse_keyspace_entry(value: str) -> KeyspaceDb:
    """Parse ``keys=<n>,expires=<n>,avg_ttl=<n>``; unknown parts are ignored."""
    parts = {}
    for part in value.split(","):
        k, sep, v = part.partition("=")
        if sep:
            parts[k.strip()] = v
    return KeyspaceDb(
        keys=parse_int(parts.get("keys")),
        expires=parse_int(parts.get("expires")),
        avg_ttl=parse_int(parts.get("avg_ttl")),
    )


def fold_info(text: Any) -> Tuple[FieldMap, Dict[str, KeyspaceDb]]:
    """Split an INFO reply into a flat field map and the per-database keyspace map."""
    fields = FieldMap()
    keyspace: Dict[str, KeyspaceDb] = {}
    for key, value in split_pairs(to_text(text), ":"):
        if KEYSPACE_LINE.match(key):
            keyspace[key] = parse_keyspace_entry(value)
        else:
            fields[key] = value
    return fields, keyspace


def parse_info(text: Any) -> InfoSnapshot:
    fields, keyspace = fold_info(text)
    return InfoSnapshot(
        server=ServerSection(
            redis_version=fields.get_str("redis_version"),
            os=fields.get_str("os"),
            uptime_in_seconds=fields.get_int("uptime_in_seconds"),
            connected_clients=fields.get_int("connected_clients"),
            tcp_port=fields.get_int("tcp_port"),
        ),
        memory=MemorySection(
            used_memory=fields.get_int("used_memory"),
            used_memory_human=fields.get_str("used_memory_human"),
            used_memory_peak=fields.get_int("used_memory_peak"),
            used_memory_peak_human=fields.get_str("used_memory_peak_human"),
            maxmemory=fields.get_int("maxmemory"),
            maxmemory_human=fields.get_str("maxmemory_human"),
            mem_fragmentation_ratio=fields.get_float("mem_fragmentation_ratio"),
        ),
        stats=StatsSection(
            total_connections_received=fields.get_int("total_connections_received"),
            total_commands_processed=fields.get_int("total_commands_processed"),
            instantaneous_ops_per_sec=fields.get_int("instantaneous_ops_per_sec"),
            keyspace_hits=fields.get_int("keyspace_hits"),
            keyspace_misses=fields.get_int("keyspace_misses"),
            expired_keys=fields.get_int("expired_keys"),
            evicted_keys=fields.get_int("evicted_keys"),
        ),
        replication=ReplicationSection(
            role=fields.get_str("role"),
            connected_slaves=fields.get_int("connected_slaves"),
            master_host=fields.get("master_host"),
            master_port=fields.get_optional_int("master_port"),
            master_link_status=fields.get("master_link_status"),
        ),
        keyspace=keyspace,
    )


def parse_command_stats(text: Any) -> List[CommandStat]:
    """Parse ``cmdstat_<name>:calls=..,usec=..,usec_per_call=..`` lines."""
    stats = []
    for key, value in split_pairs(to_text(text), ":"):
        if not key.startswith(COMMAND_STAT_PREFIX):
            continue
        metrics = {}
        for part in value.split(","):
            k, sep, v = part.partition("=")
            if sep:
                metrics[k.strip()] = v
        stats.append(
            CommandStat(
                command=key[len(COMMAND_STAT_PREFIX) :].upper(),
                calls=parse_int(metrics.get("calls")),
                usec=parse_int(metrics.get("usec")),
                usec_per_call=parse_float(metrics.get("usec_per_call")),
                rejected_calls=parse_int(metrics.get("rejected_calls")),
                failed_calls=parse_int(metrics.get("failed_calls")),
            )
        )
    return stats


def parse_cluster_info(text: Any) -> ClusterInfo:
    fields = fold_lines(text)
    return ClusterInfo(
        cluster_enabled=True,
        cluster_state=fields.get_str("cluster_state"),
        cluster_slots_assigned=fields.get_int("cluster_slots_assigned"),
        cluster_slots_ok=fields.get_int("cluster_slots_ok"),
        cluster_slots_pfail=fields.get_int("cluster_slots_pfail"),
        cluster_slots_fail=fields.get_int("cluster_slots_fail"),
        cluster_known_nodes=fields.get_int("cluster_known_nodes"),
        cluster_size=fields.get_int("cluster_size"),
        cluster_current_epoch=fields.get_int("cluster_current_epoch"),
        cluster_my_epoch=fields.get_int("cluster_my_epoch"),
    )


def parse_cluster_state(text: Any) -> Optional[str]:
    """Return ``cluster_state`` from a CLUSTER INFO reply, if present."""
    return fold_lines(text).get("cluster_state")


def parse_persistence_info(text: Any) -> PersistenceInfo:
    fields = fold_lines(text)
    return PersistenceInfo(
        rdb_last_save_time=fields.get_int("rdb_last_save_time"),
        rdb_changes_since_last_save=fields.get_int("rdb_changes_since_last_save"),
        rdb_bgsave_in_progress=fields.get_bool("rdb_bgsave_in_progress"),
        rdb_last_bgsave_status=fields.get_str("rdb_last_bgsave_status"),
        rdb_last_bgsave_time_sec=fields.get_int("rdb_last_bgsave_time_sec", -1),
        aof_enabled=fields.get_bool("aof_enabled"),
        aof_rewrite_in_progress=fields.get_bool("aof_rewrite_in_progress"),
        aof_last_rewrite_time_sec=fields.get_int("aof_last_rewrite_time_sec", -1),
        aof_last_bgrewrite_status=fields.get_str("aof_last_bgrewrite_status"),
        aof_current_size=fields.get_int("aof_current_size"),
        aof_base_size=fields.get_int("aof_base_size"),
    )


def parse_cpu_stats(text: Any) -> CpuStats:
    fields = fold_lines(text)
    return CpuStats(
        used_cpu_sys=fields.get_float("used_cpu_sys"),
        used_cpu_user=fields.get_float("used_cpu_user"),
        used_cpu_sys_children=fields.get_float("used_cpu_sys_children"),
        used_cpu_user_children=fields.get_float("used_cpu_user_children"),
    )


def parse_error_stats(text: Any) -> List[ErrorStat]:
    """Parse ``errorstat_<TYPE>:count=<n>`` lines; lines without a valid count are dropped."""
    stats = []
    for key, value in split_pairs(to_text(text), ":"):
        if not key.startswith(ERROR_STAT_PREFIX) or not value.startswith("count="):
            continue
        count = parse_int(value[len("count=") :], default=-1)
        if count < 0:
            continue
        stats.append(ErrorStat(error_type=key[len(ERROR_STAT_PREFIX) :], count=count))
    return stats
