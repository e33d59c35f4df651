"""Adapters that turn recorded telemetry into snapshots."""
