"""Static risk classification for operations a user is about to run.

The table maps an upper-cased command name to a risk level, a message
template and an impact estimate. KEYS is the one entry whose level depends on
live data: it escalates with the server's total key count.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, Mapping, Optional

from redis_tics.core.config import settings
from redis_tics.models.analysis import PerformanceWarning, RiskLevel

if TYPE_CHECKING:
    from .dispatcher import CommandDispatcher


@dataclass(frozen=True)
class ImpactRule:
    level: RiskLevel
    message: str
    estimated_impact: str


KEYS_RULES = {
    RiskLevel.critical: ImpactRule(
        RiskLevel.critical,
        "KEYS command will scan {total_keys} keys and block Redis. Use SCAN instead.",
        "High - Server will be unresponsive during execution",
    ),
    RiskLevel.warning: ImpactRule(
        RiskLevel.warning,
        "KEYS will scan {total_keys} keys. Consider using SCAN for production.",
        "Medium - Brief latency spike expected",
    ),
    RiskLevel.info: ImpactRule(
        RiskLevel.info,
        "KEYS command is safe for small datasets.",
        "Low - Minimal impact expected",
    ),
}

_FETCH_ALL = ImpactRule(
    RiskLevel.warning,
    "{operation} fetches all elements. For large collections, consider pagination.",
    "Variable - Depends on collection size",
)
_DESTROY_ALL = ImpactRule(
    RiskLevel.critical,
    "This operation will DELETE ALL DATA. Cannot be undone!",
    "Critical - All data will be lost",
)

DEFAULT_RULES: Dict[str, ImpactRule] = {
    "SCAN": ImpactRule(
        RiskLevel.info,
        "SCAN is production-safe. It iterates incrementally without blocking.",
        "Minimal - Non-blocking cursor-based iteration",
    ),
    "SMEMBERS": _FETCH_ALL,
    "HGETALL": _FETCH_ALL,
    "LRANGE": _FETCH_ALL,
    "FLUSHDB": _DESTROY_ALL,
    "FLUSHALL": _DESTROY_ALL,
    "DEBUG": ImpactRule(
        RiskLevel.critical,
        "DEBUG commands can crash or hang the server.",
        "Critical - May cause server instability",
    ),
}

UNKNOWN_RULE = ImpactRule(
    RiskLevel.info, "{operation} operation", "Unknown - Check Redis documentation"
)


def keys_risk_level(
    total_keys: int,
    warning_threshold: Optional[int] = None,
    critical_threshold: Optional[int] = None,
) -> RiskLevel:
    if warning_threshold is None:
        warning_threshold = settings.keys_warning_threshold
    if critical_threshold is None:
        critical_threshold = settings.keys_critical_threshold
    if total_keys > critical_threshold:
        return RiskLevel.critical
    if total_keys > warning_threshold:
        return RiskLevel.warning
    return RiskLevel.info


def assess_operation(
    operation: str,
    pattern: str = "",
    total_keys: int = 0,
    rules: Mapping[str, ImpactRule] = DEFAULT_RULES,
) -> PerformanceWarning:
    """Classify ``operation`` without talking to a server.

    The command name is matched case-insensitively.
    """
    operation = operation.strip().upper()
    if operation == "KEYS":
        rule = KEYS_RULES[keys_risk_level(total_keys)]
    else:
        rule = rules.get(operation, UNKNOWN_RULE)

    return PerformanceWarning(
        level=rule.level,
        message=rule.message.format(operation=operation, total_keys=total_keys),
        command=f"{operation} {pattern}",
        estimated_impact=rule.estimated_impact,
    )


async def check_operation_impact(
    dispatcher: "CommandDispatcher", server_id: str, operation: str, pattern: str = ""
) -> PerformanceWarning:
    """Classify ``operation`` using the live key count of ``server_id``."""
    capabilities = await dispatcher.get_server_capabilities(server_id)
    return assess_operation(operation, pattern, capabilities.total_keys)
