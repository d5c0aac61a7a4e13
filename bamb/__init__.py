"""BAMB backend: access control and dynamic query layer for the building-material inventory."""

__version__ = "0.3.0"
