"""
Telemetry aggregation and export pipeline for the JWT Pizza service.
"""
__version__ = "1.0.0"
