"""Table host package: wraps the Big Two room engine with networking."""

from .server import HostServer

__all__ = ["HostServer"]
