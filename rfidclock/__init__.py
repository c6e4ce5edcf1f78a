"""RFID / fingerprint event ingestion and attendance state engine."""

__version__ = "0.1.0"
