"""Decoder for MONITOR trace lines.

A trace line looks like::

    1700000000.123456 [0 127.0.0.1:51000] "SET" "foo" "bar"

i.e. ``<seconds>.<fraction> [<db> <peer-addr>] "<command>" "<arg>"...``.
"""

import re
from decimal import Decimal

from redis_tics.core.errors import DecodeError
from redis_tics.models.monitor import MonitorEvent

from .fields import to_text

MONITOR_LINE = re.compile(r'(\d+\.\d+)\s+\[(\d+)\s+([^\]]+)\]\s+"((?:[^"\\]|\\.)+)"(.*)$')
QUOTED_ARG = re.compile(r'"((?:[^"\\]|\\.)*)"')
_ESCAPES = {'"': '"', "\\": "\\", "n": "\n", "r": "\r", "t": "\t"}
_ESCAPE = re.compile(r"\\(x[0-9a-fA-F]{2}|.)")


def _unescape(text: str) -> str:
    def replace(match: re.Match) -> str:
        token = match.group(1)
        if token.startswith("x") and len(token) == 3:
            return chr(int(token[1:], 16))
        return _ESCAPES.get(token, token)

    return _ESCAPE.sub(replace, text)


def parse_monitor_line(line) -> MonitorEvent:
    """Decode one trace line.

    Raises:
        DecodeError: if the line does not match the trace grammar (the server
            occasionally emits out-of-band text on a MONITOR connection).
    """
    raw = to_text(line).rstrip("\r\n")
    match = MONITOR_LINE.search(raw)
    if match is None:
        raise DecodeError(raw)

    seconds, db, peer, command, rest = match.groups()
    peer_ip, sep, peer_port = peer.rpartition(":")
    if not sep:
        peer_ip, peer_port = peer, "0"

    return MonitorEvent(
        timestamp=int(Decimal(seconds) * 1000),
        client_ip=peer_ip,
        client_port=peer_port,
        db=int(db),
        command=_unescape(command).upper(),
        args=[_unescape(arg) for arg in QUOTED_ARG.findall(rest)],
        raw=raw,
    )
