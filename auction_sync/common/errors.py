"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class TransportError(PipelineError):
    """Network, timeout or DNS failure talking to an upstream provider."""

    error_code = "TRANSPORT_ERROR"


class ProtocolError(PipelineError):
    """Expected token, cookie or response shape is missing."""

    error_code = "PROTOCOL_ERROR"


class DecodeError(PipelineError):
    """Payload could not be decoded with the provider charset or parsed."""

    error_code = "DECODE_ERROR"


class ValidationError(PipelineError):
    """A raw record lacks a field required to identify it."""

    error_code = "VALIDATION_ERROR"


class PersistenceError(PipelineError):
    error_code = "PERSISTENCE_ERROR"


class BackupError(PipelineError):
    error_code = "BACKUP_ERROR"
