"""CLI interface for redis-tics."""

import importlib
import logging

import click

from redis_tics.core.config import settings

# Map command names to their module:attribute for lazy import
_COMMANDS = {
    "server": "redis_tics.cli.server:server",
    "info": "redis_tics.cli.status:info",
    "clients": "redis_tics.cli.status:clients",
    "slowlog": "redis_tics.cli.status:slowlog",
    "analytics": "redis_tics.cli.status:analytics",
    "capabilities": "redis_tics.cli.status:capabilities",
    "keys": "redis_tics.cli.keys:keys",
    "exec": "redis_tics.cli.keys:exec_command",
    "impact": "redis_tics.cli.keys:impact",
    "analyze": "redis_tics.cli.analyze:analyze",
    "monitor": "redis_tics.cli.monitor:monitor",
}


class LazyGroup(click.Group):
    """
    Lazy loading of CLI commands so `--help` and simple commands stay fast.

    Each command lives in its own module and is only imported when used.
    """

    def list_commands(self, ctx):
        # Keep stable ordering for help output
        return list(_COMMANDS.keys())

    def get_command(self, ctx, name):
        target = _COMMANDS.get(name)
        if not target:
            return None
        module_path, attr = target.split(":", 1)
        mod = importlib.import_module(module_path)
        return getattr(mod, attr)


@click.command(cls=LazyGroup)
@click.option("--log-level", default=None, help="Override REDIS_TICS_LOG_LEVEL")
def main(log_level):
    """Inspect and analyse Redis and Valkey servers."""
    logging.basicConfig(
        level=(log_level or settings.log_level).upper(),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
        datefmt="%H:%M:%S",
    )


if __name__ == "__main__":
    main()
