"""Typed records produced by the status and diagnostics reply parsers.

Every field carries a default so a parser can always return a complete record,
even when the server omits or garbles a field.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class ServerSection(BaseModel):
    redis_version: str = ""
    os: str = ""
    uptime_in_seconds: int = 0
    connected_clients: int = 0
    tcp_port: int = 0


class MemorySection(BaseModel):
    used_memory: int = 0
    used_memory_human: str = ""
    used_memory_peak: int = 0
    used_memory_peak_human: str = ""
    maxmemory: int = 0
    maxmemory_human: str = ""
    mem_fragmentation_ratio: float = 0.0


class StatsSection(BaseModel):
    total_connections_received: int = 0
    total_commands_processed: int = 0
    instantaneous_ops_per_sec: int = 0
    keyspace_hits: int = 0
    keyspace_misses: int = 0
    expired_keys: int = 0
    evicted_keys: int = 0


class ReplicationSection(BaseModel):
    role: str = ""
    connected_slaves: int = 0
    master_host: Optional[str] = None
    master_port: Optional[int] = None
    master_link_status: Optional[str] = None


class KeyspaceDb(BaseModel):
    """One ``dbN:keys=..,expires=..,avg_ttl=..`` line of INFO keyspace."""

    keys: int = 0
    expires: int = 0
    avg_ttl: int = 0


class InfoSnapshot(BaseModel):
    """Parsed INFO reply. Recomputed on every request, never cached."""

    server: ServerSection = Field(default_factory=ServerSection)
    memory: MemorySection = Field(default_factory=MemorySection)
    stats: StatsSection = Field(default_factory=StatsSection)
    replication: ReplicationSection = Field(default_factory=ReplicationSection)
    keyspace: Dict[str, KeyspaceDb] = Field(default_factory=dict)

    @property
    def total_keys(self) -> int:
        return sum(db.keys for db in self.keyspace.values())


class ClientRecord(BaseModel):
    """One line of CLIENT LIST."""

    id: str = ""
    addr: str
    ip: str = ""
    port: str = ""
    name: Optional[str] = None
    age: int = 0
    idle: int = 0
    flags: str = ""
    db: int = 0
    cmd: str = ""
    qbuf: int = 0
    obl: int = 0
    oll: int = 0
    omem: int = 0


class SlowLogEntry(BaseModel):
    id: int
    timestamp: int
    duration_us: int
    command: str = ""
    args: List[str] = Field(default_factory=list)
    client_addr: Optional[str] = None
    client_name: Optional[str] = None


class MemoryStats(BaseModel):
    """Named projection of MEMORY STATS."""

    peak_allocated: int = 0
    total_allocated: int = 0
    startup_allocated: int = 0
    replication_backlog: int = 0
    clients_slaves: int = 0
    clients_normal: int = 0
    aof_buffer: int = 0
    lua_caches: int = 0
    db_hashtable_overhead: int = 0
    keys_count: int = 0
    keys_bytes_per_key: int = 0
    dataset_bytes: int = 0
    dataset_percentage: float = 0.0
    peak_percentage: float = 0.0
    fragmentation_ratio: float = 0.0


class CommandStat(BaseModel):
    command: str
    calls: int = 0
    usec: int = 0
    usec_per_call: float = 0.0
    rejected_calls: int = 0
    failed_calls: int = 0


class ClusterInfo(BaseModel):
    cluster_enabled: bool = True
    cluster_state: str = ""
    cluster_slots_assigned: int = 0
    cluster_slots_ok: int = 0
    cluster_slots_pfail: int = 0
    cluster_slots_fail: int = 0
    cluster_known_nodes: int = 0
    cluster_size: int = 0
    cluster_current_epoch: int = 0
    cluster_my_epoch: int = 0


class ClusterNode(BaseModel):
    id: str
    addr: str
    flags: str
    master_id: Optional[str] = None
    ping_sent: int = 0
    pong_recv: int = 0
    config_epoch: int = 0
    link_state: str = ""
    slots: List[str] = Field(default_factory=list)


class PersistenceInfo(BaseModel):
    rdb_last_save_time: int = 0
    rdb_changes_since_last_save: int = 0
    rdb_bgsave_in_progress: bool = False
    rdb_last_bgsave_status: str = ""
    rdb_last_bgsave_time_sec: int = -1
    aof_enabled: bool = False
    aof_rewrite_in_progress: bool = False
    aof_last_rewrite_time_sec: int = -1
    aof_last_bgrewrite_status: str = ""
    aof_current_size: int = 0
    aof_base_size: int = 0


class CpuStats(BaseModel):
    used_cpu_sys: float = 0.0
    used_cpu_user: float = 0.0
    used_cpu_sys_children: float = 0.0
    used_cpu_user_children: float = 0.0


class ErrorStat(BaseModel):
    error_type: str
    count: int = 0


class AdvancedAnalytics(BaseModel):
    """Best-effort aggregate; any section the server could not provide is empty."""

    memory_stats: Optional[MemoryStats] = None
    memory_doctor: Optional[str] = None
    slow_log: List[SlowLogEntry] = Field(default_factory=list)
    command_stats: List[CommandStat] = Field(default_factory=list)
    cluster_info: Optional[ClusterInfo] = None
    cluster_nodes: List[ClusterNode] = Field(default_factory=list)
    persistence: Optional[PersistenceInfo] = None
    cpu_stats: Optional[CpuStats] = None
    error_stats: List[ErrorStat] = Field(default_factory=list)
    latency_doctor: Optional[str] = None
