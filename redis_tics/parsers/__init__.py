"""Reply parsers.

Every parser is total: missing or malformed fields fall back to defaults
instead of raising, so one odd line never fails a whole request.
"""

from .info import (
    parse_cluster_info,
    parse_command_stats,
    parse_cpu_stats,
    parse_error_stats,
    parse_info,
    parse_persistence_info,
)
from .monitor import parse_monitor_line
from .render import format_reply
from .replies import (
    parse_client_list,
    parse_cluster_nodes,
    parse_memory_stats,
    parse_slow_log,
    parse_stream_entries,
    parse_zset_members,
)

__all__ = [
    "format_reply",
    "parse_client_list",
    "parse_cluster_info",
    "parse_cluster_nodes",
    "parse_command_stats",
    "parse_cpu_stats",
    "parse_error_stats",
    "parse_info",
    "parse_memory_stats",
    "parse_monitor_line",
    "parse_persistence_info",
    "parse_slow_log",
    "parse_stream_entries",
    "parse_zset_members",
]
