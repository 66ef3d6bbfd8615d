"""Error taxonomy shared by the registry, dispatcher, parsers and monitor stream."""


class RedisTicsError(Exception):
    """Base class for all redis-tics errors."""

    pass


class NotConnectedError(RedisTicsError):
    """Raised when a server id has no live session."""

    def __init__(self, server_id: str):
        super().__init__(f"Server not connected: {server_id}")
        self.server_id = server_id


class ServerConnectionError(RedisTicsError):
    """Raised when opening, authenticating or talking to a server fails at the transport level."""

    pass


class CommandError(RedisTicsError):
    """Raised when the server rejects or fails a command.

    The message is the server's error text, passed through verbatim.
    """

    pass


class ParseError(RedisTicsError):
    """Raised for malformed caller input, such as an unsupported connection URL.

    Reply parsers never raise this; they always return a best-effort record.
    """

    pass


class DecodeError(RedisTicsError):
    """Raised when a trace line does not match the monitor grammar."""

    def __init__(self, line: str):
        super().__init__(f"Unrecognised monitor line: {line[:120]!r}")
        self.line = line
