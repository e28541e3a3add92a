"""Statutory payroll draft engine."""

__version__ = "0.1.0"
