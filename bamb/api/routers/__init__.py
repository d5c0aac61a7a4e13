"""API routers for the BAMB backend."""

from . import access_control
from . import circularity
from . import core
from . import inventory
from . import projects

__all__ = [
    "access_control",
    "circularity",
    "core",
    "inventory",
    "projects",
]
