"""Pickaxe - Packet handler code generator for the quartz server."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pickaxe")
except PackageNotFoundError:
    __version__ = "(local)"
