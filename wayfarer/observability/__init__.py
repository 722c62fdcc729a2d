"""Logging and in-process telemetry for the Wayfarer backend."""
