"""Typed and ad-hoc commands against a connected server.

Every operation is keyed by server id and holds the session only for its own
round trip. Multi-command operations (advanced analytics, key enrichment,
bulk delete) re-acquire the session per command so a long run never starves
other callers of the same registry.
"""

import logging
import shlex
import time
from typing import Any, List, Optional, Tuple

from opentelemetry import trace
from redis.exceptions import ConnectionError as RedisConnectionError
from redis.exceptions import RedisError, ResponseError
from redis.exceptions import TimeoutError as RedisTimeoutError

from redis_tics.core.config import settings
from redis_tics.core.errors import CommandError, ServerConnectionError
from redis_tics.core.registry import ConnectionRegistry
from redis_tics.models.analysis import (
    ClientAnalysisReport,
    DatabaseAnalysisReport,
    PerformanceWarning,
    ServerCapabilities,
)
from redis_tics.models.info import (
    AdvancedAnalytics,
    ClientRecord,
    ClusterInfo,
    ClusterNode,
    CommandStat,
    CpuStats,
    ErrorStat,
    InfoSnapshot,
    MemoryStats,
    PersistenceInfo,
    SlowLogEntry,
)
from redis_tics.models.keys import (
    BulkDeleteResult,
    CommandResult,
    KeyRecord,
    KeyScanResult,
    KeyValue,
)
from redis_tics.parsers.fields import parse_int, to_text
from redis_tics.parsers.info import (
    fold_info,
    parse_command_stats,
    parse_cluster_info,
    parse_cpu_stats,
    parse_error_stats,
    parse_info,
    parse_persistence_info,
)
from redis_tics.parsers.render import format_reply
from redis_tics.parsers.replies import (
    pairs_to_dict,
    parse_client_list,
    parse_cluster_nodes,
    parse_memory_stats,
    parse_slow_log,
    parse_stream_entries,
    parse_zset_members,
)

from .capabilities import probe_capabilities
from .client_analyzer import analyze_client_list
from .database_analyzer import analyze_database
from .impact import check_operation_impact

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

LATENCY_DISABLED_HINT = (
    "Latency monitoring not enabled. Use CONFIG SET latency-monitor-threshold 100"
)
LIST_TOMBSTONE = "__DELETED__"
ADVANCED_SLOW_LOG_COUNT = 50


class CommandDispatcher:
    """Sends commands through a ConnectionRegistry and parses the replies."""

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    async def call(self, server_id: str, *args: Any) -> Any:
        """Send one command and return the raw reply.

        Raises:
            NotConnectedError: if the server has no live session
            CommandError: if the server rejects the command
            ServerConnectionError: if the transport fails
        """
        name = to_text(args[0]).upper() if args else ""
        with tracer.start_as_current_span(
            f"redis.{name.lower()}",
            attributes={"db.system": "redis", "db.operation": name, "server.id": server_id},
        ):
            async with self.registry.session(server_id) as session:
                try:
                    return await session.client.execute_command(*args)
                except ResponseError as e:
                    raise CommandError(str(e)) from e
                except (RedisConnectionError, RedisTimeoutError, OSError) as e:
                    raise ServerConnectionError(str(e)) from e
                except RedisError as e:
                    raise CommandError(str(e)) from e

    async def best_effort(self, server_id: str, *args: Any, default: Any = None) -> Any:
        """Like :meth:`call`, but a failed command yields ``default``.

        NotConnectedError still propagates.
        """
        try:
            return await self.call(server_id, *args)
        except (CommandError, ServerConnectionError) as e:
            logger.debug(f"{to_text(args[0]) if args else ''} failed on {server_id}: {e}")
            return default

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    async def get_info(self, server_id: str) -> InfoSnapshot:
        return parse_info(await self.call(server_id, "INFO"))

    async def get_clients(self, server_id: str) -> List[ClientRecord]:
        return parse_client_list(await self.call(server_id, "CLIENT", "LIST"))

    async def get_slow_log(self, server_id: str, count: int = 10) -> List[SlowLogEntry]:
        return parse_slow_log(await self.call(server_id, "SLOWLOG", "GET", count))

    async def get_memory_stats(self, server_id: str) -> MemoryStats:
        return parse_memory_stats(await self.call(server_id, "MEMORY", "STATS"))

    async def get_memory_doctor(self, server_id: str) -> str:
        return to_text(await self.call(server_id, "MEMORY", "DOCTOR"))

    async def get_command_stats(self, server_id: str) -> List[CommandStat]:
        return parse_command_stats(await self.call(server_id, "INFO", "commandstats"))

    async def get_cluster_info(self, server_id: str) -> Optional[ClusterInfo]:
        """Return the cluster summary, or None when the server is not in cluster mode."""
        fields, _ = fold_info(await self.call(server_id, "INFO", "cluster"))
        if not fields.get_bool("cluster_enabled"):
            return None
        return parse_cluster_info(await self.best_effort(server_id, "CLUSTER", "INFO", default=""))

    async def get_cluster_nodes(self, server_id: str) -> List[ClusterNode]:
        return parse_cluster_nodes(
            await self.best_effort(server_id, "CLUSTER", "NODES", default="")
        )

    async def get_persistence_info(self, server_id: str) -> PersistenceInfo:
        return parse_persistence_info(await self.call(server_id, "INFO", "persistence"))

    async def get_cpu_stats(self, server_id: str) -> CpuStats:
        return parse_cpu_stats(await self.call(server_id, "INFO", "cpu"))

    async def get_error_stats(self, server_id: str) -> List[ErrorStat]:
        # INFO errorstats is missing before 6.2; an older server just has no error stats.
        return parse_error_stats(
            await self.best_effort(server_id, "INFO", "errorstats", default="")
        )

    async def get_latency_doctor(self, server_id: str) -> str:
        reply = await self.best_effort(server_id, "LATENCY", "DOCTOR")
        return LATENCY_DISABLED_HINT if reply is None else to_text(reply)

    async def get_memory_analytics(
        self, server_id: str
    ) -> Tuple[Optional[MemoryStats], Optional[str]]:
        stats = await self._optional(self.get_memory_stats(server_id))
        doctor = await self._optional(self.get_memory_doctor(server_id))
        return stats, doctor

    async def get_latency_analytics(self, server_id: str) -> Optional[str]:
        return await self._optional(self.get_latency_doctor(server_id))

    async def get_advanced_analytics(self, server_id: str) -> AdvancedAnalytics:
        """Collect every diagnostic section; a section the server cannot provide is left empty."""
        cluster_info = await self._optional(self.get_cluster_info(server_id))
        return AdvancedAnalytics(
            memory_stats=await self._optional(self.get_memory_stats(server_id)),
            memory_doctor=await self._optional(self.get_memory_doctor(server_id)),
            slow_log=await self._optional(
                self.get_slow_log(server_id, ADVANCED_SLOW_LOG_COUNT), []
            ),
            command_stats=await self._optional(self.get_command_stats(server_id), []),
            cluster_info=cluster_info,
            cluster_nodes=await self.get_cluster_nodes(server_id) if cluster_info else [],
            persistence=await self._optional(self.get_persistence_info(server_id)),
            cpu_stats=await self._optional(self.get_cpu_stats(server_id)),
            error_stats=await self.get_error_stats(server_id),
            latency_doctor=await self._optional(self.get_latency_doctor(server_id)),
        )

    async def _optional(self, operation, default: Any = None) -> Any:
        try:
            return await operation
        except (CommandError, ServerConnectionError) as e:
            logger.debug(f"Skipping unavailable section: {e}")
            return default

    # ------------------------------------------------------------------
    # Key browser
    # ------------------------------------------------------------------

    async def scan_keys(
        self, server_id: str, pattern: str = "*", cursor: str = "0", count: int = 100
    ) -> KeyScanResult:
        """Fetch one SCAN page and describe up to ``scan_detail_limit`` of its keys."""
        reply = await self.call(
            server_id, "SCAN", cursor, "MATCH", pattern or "*", "COUNT", count
        )
        next_cursor, keys = _split_scan_reply(reply)

        records = []
        for key in keys[: settings.scan_detail_limit]:
            records.append(await self.describe_key(server_id, key))

        return KeyScanResult(
            keys=records,
            cursor=next_cursor,
            has_more=next_cursor != "0",
            total_scanned=count,
        )

    async def describe_key(self, server_id: str, key: str) -> KeyRecord:
        """Type, TTL, memory and encoding of one key; each part is best-effort."""
        key_type = await self.best_effort(server_id, "TYPE", key)
        ttl = await self.best_effort(server_id, "TTL", key)
        size = await self.best_effort(server_id, "MEMORY", "USAGE", key, "SAMPLES", 0)
        encoding = await self.best_effort(server_id, "OBJECT", "ENCODING", key)
        return KeyRecord(
            key=key,
            key_type=to_text(key_type) if key_type is not None else "unknown",
            ttl=parse_int(ttl, -1),
            size=parse_int(size) if size is not None else None,
            encoding=to_text(encoding) if encoding is not None else None,
        )

    async def get_key_value(self, server_id: str, key: str) -> KeyValue:
        key_type = to_text(await self.call(server_id, "TYPE", key))
        ttl = parse_int(await self.best_effort(server_id, "TTL", key), -1)
        size = await self.best_effort(server_id, "MEMORY", "USAGE", key)

        if key_type == "string":
            value: Any = to_text(await self.best_effort(server_id, "GET", key, default=""))
        elif key_type == "list":
            last = settings.collection_preview_limit - 1
            items = await self.best_effort(server_id, "LRANGE", key, 0, last, default=[])
            value = [to_text(v) for v in items]
        elif key_type == "set":
            members = await self.best_effort(server_id, "SMEMBERS", key, default=[])
            value = sorted(to_text(m) for m in members)
        elif key_type == "zset":
            last = settings.collection_preview_limit - 1
            value = parse_zset_members(
                await self.best_effort(server_id, "ZRANGE", key, 0, last, "WITHSCORES", default=[])
            )
        elif key_type == "hash":
            value = pairs_to_dict(await self.best_effort(server_id, "HGETALL", key, default=[]))
        elif key_type == "stream":
            value = parse_stream_entries(
                await self.best_effort(
                    server_id,
                    "XRANGE",
                    key,
                    "-",
                    "+",
                    "COUNT",
                    settings.stream_preview_limit,
                    default=[],
                )
            )
        else:
            value = f"Type '{key_type}' not supported for viewing"

        return KeyValue(
            key=key,
            key_type=key_type,
            ttl=ttl,
            size=parse_int(size) if size is not None else None,
            value=value,
        )

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def delete_key(self, server_id: str, key: str) -> bool:
        return parse_int(await self.call(server_id, "DEL", key)) > 0

    async def set_key_ttl(self, server_id: str, key: str, ttl: int) -> bool:
        """Set a TTL in seconds; a negative ttl removes the expiry instead."""
        if ttl < 0:
            reply = await self.call(server_id, "PERSIST", key)
        else:
            reply = await self.call(server_id, "EXPIRE", key, ttl)
        return parse_int(reply) > 0

    async def set_string(
        self, server_id: str, key: str, value: str, ttl: Optional[int] = None
    ) -> bool:
        args: List[Any] = ["SET", key, value]
        if ttl is not None and ttl > 0:
            args += ["EX", ttl]
        await self.call(server_id, *args)
        return True

    async def hash_set(self, server_id: str, key: str, field: str, value: str) -> bool:
        await self.call(server_id, "HSET", key, field, value)
        return True

    async def hash_delete(self, server_id: str, key: str, field: str) -> bool:
        return parse_int(await self.call(server_id, "HDEL", key, field)) > 0

    async def list_push(
        self, server_id: str, key: str, value: str, position: str = "right"
    ) -> int:
        command = "LPUSH" if position == "left" else "RPUSH"
        return parse_int(await self.call(server_id, command, key, value))

    async def list_remove(self, server_id: str, key: str, index: int) -> bool:
        """Remove the element at ``index`` by overwriting it with a tombstone and removing that."""
        await self.call(server_id, "LSET", key, index, LIST_TOMBSTONE)
        await self.call(server_id, "LREM", key, 1, LIST_TOMBSTONE)
        return True

    async def set_add(self, server_id: str, key: str, member: str) -> bool:
        return parse_int(await self.call(server_id, "SADD", key, member)) > 0

    async def set_remove(self, server_id: str, key: str, member: str) -> bool:
        return parse_int(await self.call(server_id, "SREM", key, member)) > 0

    async def zset_add(self, server_id: str, key: str, score: float, member: str) -> bool:
        await self.call(server_id, "ZADD", key, score, member)
        return True

    async def zset_remove(self, server_id: str, key: str, member: str) -> bool:
        return parse_int(await self.call(server_id, "ZREM", key, member)) > 0

    async def rename_key(self, server_id: str, old_key: str, new_key: str) -> bool:
        await self.call(server_id, "RENAME", old_key, new_key)
        return True

    async def copy_key(self, server_id: str, source: str, destination: str) -> bool:
        return parse_int(await self.call(server_id, "COPY", source, destination)) > 0

    async def bulk_delete(self, server_id: str, pattern: str) -> BulkDeleteResult:
        """Delete every key matching ``pattern``, one DEL per key.

        A failed SCAN aborts with CommandError; a failed DEL is counted and the
        first ``bulk_delete_error_limit`` messages are kept.
        """
        started = time.perf_counter()
        result = BulkDeleteResult()
        cursor = "0"
        while True:
            reply = await self.call(
                server_id, "SCAN", cursor, "MATCH", pattern, "COUNT", settings.scan_batch_size
            )
            cursor, keys = _split_scan_reply(reply)
            for key in keys:
                try:
                    result.deleted_count += parse_int(await self.call(server_id, "DEL", key))
                except (CommandError, ServerConnectionError) as e:
                    result.failed_count += 1
                    if len(result.errors) < settings.bulk_delete_error_limit:
                        result.errors.append(f"{key}: {e}")
            if cursor == "0":
                break

        result.execution_time_ms = _elapsed_ms(started)
        logger.info(
            f"Bulk delete of {pattern!r} on {server_id}: "
            f"{result.deleted_count} deleted, {result.failed_count} failed"
        )
        return result

    # ------------------------------------------------------------------
    # Ad-hoc execution
    # ------------------------------------------------------------------

    async def execute_command(self, server_id: str, command_line: str) -> CommandResult:
        """Run one command typed by a user and render its reply.

        Server-side errors are reported in the result. An empty line raises
        CommandError; a missing session raises NotConnectedError.
        """
        parts = tokenize_command(command_line)
        if not parts:
            raise CommandError("Empty command")

        started = time.perf_counter()
        try:
            reply = await self.call(server_id, *parts)
        except (CommandError, ServerConnectionError) as e:
            return CommandResult(
                success=False,
                execution_time_ms=_elapsed_ms(started),
                error=str(e),
            )
        return CommandResult(
            success=True,
            result=format_reply(reply),
            execution_time_ms=_elapsed_ms(started),
        )

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    async def analyze_database(
        self, server_id: str, sample_size: Optional[int] = None
    ) -> DatabaseAnalysisReport:
        return await analyze_database(self, server_id, sample_size)

    async def analyze_clients(self, server_id: str) -> ClientAnalysisReport:
        return analyze_client_list(await self.get_clients(server_id))

    async def get_server_capabilities(self, server_id: str) -> ServerCapabilities:
        return await probe_capabilities(self, server_id)

    async def check_operation_impact(
        self, server_id: str, operation: str, pattern: str = ""
    ) -> PerformanceWarning:
        return await check_operation_impact(self, server_id, operation, pattern)


def tokenize_command(command_line: str) -> List[str]:
    """Split a command line with shell-style quoting.

    Falls back to a plain whitespace split when the quoting is unbalanced.
    """
    try:
        return shlex.split(command_line)
    except ValueError:
        return command_line.split()


def _split_scan_reply(reply: Any) -> Tuple[str, List[str]]:
    if not isinstance(reply, (list, tuple)) or len(reply) != 2:
        raise CommandError(f"Unexpected SCAN reply: {reply!r}")
    cursor, keys = reply
    return to_text(cursor), [to_text(k) for k in keys or []]


def _elapsed_ms(started: float) -> int:
    return int((time.perf_counter() - started) * 1000)
