"""Resumable, rate-limited batch executor for per-account actions."""

__version__ = "0.1.0"
