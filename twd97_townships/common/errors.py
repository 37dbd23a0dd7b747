"""Domain errors and failure typing."""


class PipelineError(Exception):
    """Base class for pipeline failures."""

    error_code = "PIPELINE_ERROR"


class ConfigError(PipelineError):
    """Raised for invalid or missing configuration."""

    error_code = "CONFIG_ERROR"


class ContractError(PipelineError):
    """Raised when a record lifecycle rule is broken."""

    error_code = "CONTRACT_ERROR"


class StageError(PipelineError):
    """Raised for stage failures that are isolated by the orchestrator."""

    error_code = "STAGE_ERROR"


class ClassificationError(StageError):
    """Raised when the township classifier cannot produce a result."""

    error_code = "CLASSIFICATION_ERROR"


class ResponseParseError(ClassificationError):
    """Raised when the model reply holds no usable JSON array."""

    error_code = "RESPONSE_PARSE_ERROR"
