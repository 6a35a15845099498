"""Helpers for writing tests: call-recording stubs, environment isolation and network fixtures."""

__version__ = "0.1.0"