"""
Custom exceptions for the pizza service telemetry pipeline.
Nothing here is fatal to the host process: probe and export errors are
raised inside the pipeline and recovered at the snapshot/export boundary.
"""


class BaseTelemetryException(Exception):
    """Base exception for the telemetry pipeline"""
    pass


class ProbeError(BaseTelemetryException):
    """A sample source could not produce a reading"""
    pass


class ExportError(BaseTelemetryException):
    """A metric line could not be pushed to the ingestion endpoint"""

    def __init__(self, message: str, status_code: int = None):
        self.status_code = status_code
        super().__init__(message)


class MetricLineError(BaseTelemetryException, ValueError):
    """A metric line has a value or tag that cannot be serialized"""
    pass


class ConfigurationError(BaseTelemetryException):
    """Error in configuration loading or validation"""
    pass
