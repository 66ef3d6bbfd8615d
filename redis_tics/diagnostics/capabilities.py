"""Server capability probing.

Derives the edition, cluster mode, replica role and which optional command
families (MEMORY, LATENCY) a server answers. The edition is decided by a
static rule table so new forks can be recognised without touching the prober.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Sequence, Tuple

from redis_tics.core.errors import CommandError, ServerConnectionError
from redis_tics.models.analysis import ServerCapabilities
from redis_tics.parsers.fields import FieldMap, to_text
from redis_tics.parsers.info import fold_info, parse_cluster_state

if TYPE_CHECKING:
    from .dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)

DEFAULT_EDITION = "Redis"
DEFAULT_MAX_CLIENTS = 10000
REPLICA_ROLES = ("slave", "replica")


@dataclass(frozen=True)
class EditionRule:
    """Match when INFO ``field`` contains ``contains`` (case-insensitive).

    ``contains=None`` matches on the field being present at all.
    ``version_prefixes`` additionally requires ``redis_version`` to start with one of them.
    """

    edition: str
    field: str
    contains: Optional[str] = None
    version_prefixes: Tuple[str, ...] = ()

    def matches(self, fields: FieldMap) -> bool:
        if self.field not in fields:
            return False
        if self.contains is not None and self.contains not in fields[self.field].lower():
            return False
        if self.version_prefixes:
            return fields.get_str("redis_version").startswith(self.version_prefixes)
        return True


EDITION_RULES: Tuple[EditionRule, ...] = (
    EditionRule("Valkey", "redis_version", "valkey"),
    EditionRule("Valkey", "server_name", "valkey"),
    EditionRule("Valkey", "redis_git_sha1", "valkey"),
    EditionRule("Valkey", "valkey_version"),
    EditionRule("Valkey", "os", "valkey", version_prefixes=("7.2.", "8.")),
    EditionRule("Redis Enterprise", "redis_version", "enterprise"),
    EditionRule("Redis Enterprise", "rlec_version"),
    EditionRule("Redis Enterprise", "enterprise_version"),
)


def detect_edition(fields: FieldMap, rules: Sequence[EditionRule] = EDITION_RULES) -> str:
    for rule in rules:
        if rule.matches(fields):
            return rule.edition
    return DEFAULT_EDITION


def classify_cluster_mode(
    cluster_reply: Optional[str], cluster_error: Optional[str], cluster_enabled_flag: bool
) -> Tuple[bool, str]:
    """Combine the CLUSTER INFO outcome with the INFO ``cluster_enabled`` flag.

    Exactly one of ``cluster_reply``/``cluster_error`` is expected to be set.
    """
    if cluster_reply is not None:
        return True, f"enabled ({parse_cluster_state(cluster_reply) or 'unknown'})"

    error = (cluster_error or "").lower()
    if "cluster" in error and "disabled" in error:
        return False, "disabled"
    if cluster_enabled_flag:
        return True, "enabled (connection may be to a node)"
    return False, "standalone"


async def _supports(dispatcher: "CommandDispatcher", server_id: str, *args: str) -> bool:
    try:
        await dispatcher.call(server_id, *args)
        return True
    except (CommandError, ServerConnectionError) as e:
        logger.debug(f"{' '.join(args)} unsupported on {server_id}: {e}")
        return False


async def probe_capabilities(
    dispatcher: "CommandDispatcher", server_id: str
) -> ServerCapabilities:
    """Probe ``server_id``.

    A failing INFO aborts the probe; every later probe is best-effort.
    """
    fields, keyspace = fold_info(await dispatcher.call(server_id, "INFO"))

    cluster_reply: Optional[str] = None
    cluster_error: Optional[str] = None
    try:
        cluster_reply = to_text(await dispatcher.call(server_id, "CLUSTER", "INFO"))
    except (CommandError, ServerConnectionError) as e:
        cluster_error = str(e)
    cluster_enabled, cluster_mode = classify_cluster_mode(
        cluster_reply, cluster_error, fields.get_bool("cluster_enabled")
    )

    role = fields.get("role") or "master"

    return ServerCapabilities(
        server_type=detect_edition(fields),
        version=fields.get_str("redis_version"),
        cluster_enabled=cluster_enabled,
        cluster_mode=cluster_mode,
        supports_memory_commands=await _supports(dispatcher, server_id, "MEMORY", "DOCTOR"),
        supports_latency_commands=await _supports(dispatcher, server_id, "LATENCY", "DOCTOR"),
        supports_module_commands=True,
        is_read_replica=role in REPLICA_ROLES,
        max_clients=fields.get_int("maxclients", DEFAULT_MAX_CLIENTS),
        total_keys=sum(db.keys for db in keyspace.values()),
    )
