"""Human-readable rendering of arbitrary replies for ad-hoc command execution.

redis-py already maps each RESP variant onto a Python type: nil -> None,
integer/big number -> int, bulk/simple/verbatim string -> str or bytes,
array/push -> list, map -> dict, set -> set, double -> float, boolean -> bool,
and an error element -> ResponseError. Attribute frames are stripped by the
parser, so an attributed value arrives as its plain payload.
"""

from functools import singledispatch
from typing import Any

from redis.exceptions import ResponseError

INT64_MAX = 2**63 - 1


@singledispatch
def format_reply(value: Any) -> str:
    return str(value)


@format_reply.register(type(None))
def _(value: None) -> str:
    return "(nil)"


@format_reply.register(bool)
def _(value: bool) -> str:
    return f"(boolean) {'true' if value else 'false'}"


@format_reply.register(int)
def _(value: int) -> str:
    if abs(value) > INT64_MAX:
        return f"(big number) {value}"
    return f"(integer) {value}"


@format_reply.register(float)
def _(value: float) -> str:
    return f"(double) {value}"


@format_reply.register(str)
def _(value: str) -> str:
    return value


@format_reply.register(bytes)
def _(value: bytes) -> str:
    return value.decode("utf-8", errors="replace")


@format_reply.register(list)
@format_reply.register(tuple)
def _(value) -> str:
    return "\n".join(f"{i}) {format_reply(item)}" for i, item in enumerate(value, start=1))


@format_reply.register(dict)
def _(value: dict) -> str:
    return "\n".join(f"{format_reply(k)}: {format_reply(v)}" for k, v in value.items())


@format_reply.register(set)
@format_reply.register(frozenset)
def _(value) -> str:
    return "\n".join(sorted(format_reply(item) for item in value))


@format_reply.register(ResponseError)
def _(value: ResponseError) -> str:
    return f"(error) {value or 'Unknown error'}"
