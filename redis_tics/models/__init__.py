"""Models package for redis-tics.

This package contains the typed records for:
- Status and diagnostics replies (INFO, CLIENT LIST, SLOWLOG, MEMORY STATS, CLUSTER)
- Key browsing and ad-hoc command results
- Database/client analysis reports, capabilities and impact warnings
- Live monitor events
"""

from .analysis import (
    ClientAnalysisReport,
    ClientAnomaly,
    ClientMemoryInfo,
    CommandClientInfo,
    DatabaseAnalysisReport,
    ExpiryAnalysis,
    IdleClient,
    KeyMemoryInfo,
    NamespaceInfo,
    PerformanceWarning,
    RiskLevel,
    ServerCapabilities,
    SuspiciousPattern,
    TypeDistribution,
    TypeMemory,
)
from .info import (
    AdvancedAnalytics,
    ClientRecord,
    ClusterInfo,
    ClusterNode,
    CommandStat,
    CpuStats,
    ErrorStat,
    InfoSnapshot,
    KeyspaceDb,
    MemorySection,
    MemoryStats,
    PersistenceInfo,
    ReplicationSection,
    ServerSection,
    SlowLogEntry,
    StatsSection,
)
from .keys import (
    BulkDeleteResult,
    CommandResult,
    KeyRecord,
    KeyScanResult,
    KeyValue,
    StreamEntry,
    ZSetMember,
)
from .monitor import MonitorEvent, MonitorState

__all__ = [
    # Status replies
    "AdvancedAnalytics",
    "ClientRecord",
    "ClusterInfo",
    "ClusterNode",
    "CommandStat",
    "CpuStats",
    "ErrorStat",
    "InfoSnapshot",
    "KeyspaceDb",
    "MemorySection",
    "MemoryStats",
    "PersistenceInfo",
    "ReplicationSection",
    "ServerSection",
    "SlowLogEntry",
    "StatsSection",
    # Keys
    "BulkDeleteResult",
    "CommandResult",
    "KeyRecord",
    "KeyScanResult",
    "KeyValue",
    "StreamEntry",
    "ZSetMember",
    # Analysis
    "ClientAnalysisReport",
    "ClientAnomaly",
    "ClientMemoryInfo",
    "CommandClientInfo",
    "DatabaseAnalysisReport",
    "ExpiryAnalysis",
    "IdleClient",
    "KeyMemoryInfo",
    "NamespaceInfo",
    "PerformanceWarning",
    "RiskLevel",
    "ServerCapabilities",
    "SuspiciousPattern",
    "TypeDistribution",
    "TypeMemory",
    # Monitor
    "MonitorEvent",
    "MonitorState",
]
