"""Reporters - run records and HTML reports."""

from lookout.reporters.flight_recorder import FlightRecorder, LogEntry

__all__ = ["FlightRecorder", "LogEntry"]
