"""Race strategy analytics engine for sim-racing telemetry."""

__version__ = "0.1.0"
