"""Absensi: attendance and HR portal backend."""

__version__ = "1.0.0"
