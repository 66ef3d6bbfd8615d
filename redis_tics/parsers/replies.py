"""Parsers for line-oriented and array replies (CLIENT LIST, SLOWLOG, MEMORY STATS, ...)."""

import math
from typing import Any, Dict, List, Optional

from redis_tics.models.info import ClientRecord, ClusterNode, MemoryStats, SlowLogEntry
from redis_tics.models.keys import StreamEntry, ZSetMember

from .fields import FieldMap, fold_flat_pairs, parse_float, parse_int, to_text

CLUSTER_NODE_MIN_FIELDS = 8

# MEMORY STATS keys whose values are summed into db_hashtable_overhead; the
# name changed between server versions.
HASHTABLE_OVERHEAD_KEYS = (
    "db.hashtable-overhead",
    "overhead.hashtable.main",
    "overhead.hashtable.expires",
)


def parse_client_list(text: Any) -> List[ClientRecord]:
    """Parse CLIENT LIST output, one record per line.

    Lines without an ``addr=`` token are dropped.
    """
    records = []
    for line in to_text(text).splitlines():
        fields = FieldMap()
        for token in line.split():
            key, sep, value = token.partition("=")
            if sep:
                fields[key] = value
        addr = fields.get("addr")
        if not addr:
            continue
        ip, sep, port = addr.rpartition(":")
        if not sep:
            ip, port = addr, ""
        records.append(
            ClientRecord(
                id=fields.get_str("id"),
                addr=addr,
                ip=ip,
                port=port,
                name=fields.get("name") or None,
                age=fields.get_int("age"),
                idle=fields.get_int("idle"),
                flags=fields.get_str("flags"),
                db=fields.get_int("db"),
                cmd=fields.get_str("cmd"),
                qbuf=fields.get_int("qbuf"),
                obl=fields.get_int("obl"),
                oll=fields.get_int("oll"),
                omem=fields.get_int("omem"),
            )
        )
    return records


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def parse_slow_log(entries: Any) -> List[SlowLogEntry]:
    """Parse SLOWLOG GET.

    Each entry is ``[id, unix_ts, duration_us, [cmd, args...], addr?, name?]``.
    Entries whose first three fields are not integers, or which have no command
    array, are dropped.
    """
    if not isinstance(entries, (list, tuple)):
        return []

    parsed = []
    for entry in entries:
        if not isinstance(entry, (list, tuple)) or len(entry) < 4:
            continue
        if not all(_is_int(entry[i]) for i in range(3)):
            continue
        command_parts = entry[3]
        if not isinstance(command_parts, (list, tuple)):
            continue
        words = [to_text(part) for part in command_parts]
        client_addr = to_text(entry[4]) if len(entry) > 4 and entry[4] is not None else None
        client_name = to_text(entry[5]) if len(entry) > 5 and entry[5] is not None else None
        parsed.append(
            SlowLogEntry(
                id=entry[0],
                timestamp=entry[1],
                duration_us=entry[2],
                command=words[0] if words else "",
                args=words[1:],
                client_addr=client_addr,
                client_name=client_name or None,
            )
        )
    return parsed


def parse_memory_stats(values: Any) -> MemoryStats:
    """Fold a MEMORY STATS reply into named fields.

    Accepts the flat RESP2 ``[name, value, ...]`` array or a RESP3 map. Integer
    and numeric-string values are kept; nested values (e.g. per-db blocks) are
    ignored.
    """
    stats: Dict[str, float] = {}
    for key, value in fold_flat_pairs(values):
        if isinstance(value, (list, tuple, dict)):
            continue
        number = parse_float(value, default=float("nan"))
        if not math.isnan(number):
            stats[key] = number

    def get(name: str) -> int:
        return int(stats.get(name, 0))

    def get_f(name: str) -> float:
        return float(stats.get(name, 0.0))

    return MemoryStats(
        peak_allocated=get("peak.allocated"),
        total_allocated=get("total.allocated"),
        startup_allocated=get("startup.allocated"),
        replication_backlog=get("replication.backlog"),
        clients_slaves=get("clients.slaves"),
        clients_normal=get("clients.normal"),
        aof_buffer=get("aof.buffer"),
        lua_caches=get("lua.caches"),
        db_hashtable_overhead=sum(get(k) for k in HASHTABLE_OVERHEAD_KEYS),
        keys_count=get("keys.count"),
        keys_bytes_per_key=get("keys.bytes-per-key"),
        dataset_bytes=get("dataset.bytes"),
        dataset_percentage=get_f("dataset.percentage"),
        peak_percentage=get_f("peak.percentage"),
        fragmentation_ratio=get_f("fragmentation"),
    )


def parse_cluster_nodes(text: Any) -> List[ClusterNode]:
    """Parse CLUSTER NODES; lines with fewer than eight fields are dropped."""
    nodes = []
    for line in to_text(text).splitlines():
        parts = line.split()
        if len(parts) < CLUSTER_NODE_MIN_FIELDS:
            continue
        nodes.append(
            ClusterNode(
                id=parts[0],
                addr=parts[1],
                flags=parts[2],
                master_id=None if parts[3] == "-" else parts[3],
                ping_sent=parse_int(parts[4]),
                pong_recv=parse_int(parts[5]),
                config_epoch=parse_int(parts[6]),
                link_state=parts[7],
                slots=parts[8:],
            )
        )
    return nodes


def pairs_to_dict(values: Any) -> Dict[str, str]:
    """Turn a flat field/value reply (HGETALL, stream fields) into a dict of strings."""
    return {key: to_text(value) for key, value in fold_flat_pairs(values)}


def parse_zset_members(values: Any) -> List[ZSetMember]:
    """Parse ZRANGE ... WITHSCORES as flat pairs (RESP2) or ``[member, score]`` pairs (RESP3)."""
    if not isinstance(values, (list, tuple)):
        return []
    members = []
    if values and isinstance(values[0], (list, tuple)):
        pairs = [tuple(v) for v in values if isinstance(v, (list, tuple)) and len(v) == 2]
    else:
        pairs = [(values[i], values[i + 1]) for i in range(0, len(values) - 1, 2)]
    for member, score in pairs:
        members.append(ZSetMember(member=to_text(member), score=parse_float(score)))
    return members


def parse_stream_entries(entries: Any) -> List[StreamEntry]:
    """Parse XRANGE output ``[[id, [field, value, ...]], ...]``.

    Entries without an id are dropped.
    """
    if not isinstance(entries, (list, tuple)):
        return []
    parsed = []
    for entry in entries:
        if not isinstance(entry, (list, tuple)) or not entry:
            continue
        entry_id: Optional[Any] = entry[0]
        if not isinstance(entry_id, (str, bytes)):
            continue
        fields = pairs_to_dict(entry[1]) if len(entry) > 1 else {}
        parsed.append(StreamEntry(id=to_text(entry_id), fields=fields))
    return parsed
