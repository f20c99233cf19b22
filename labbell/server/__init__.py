"""labbell HTTP edge (aiohttp)."""

from .server import LabBellServer

__all__ = ['LabBellServer']
