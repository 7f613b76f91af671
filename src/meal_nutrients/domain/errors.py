"""Errors raised by the nutrition pipeline."""


class NutritionPipelineError(Exception):
    """Base class for pipeline errors."""


class ConfigurationMissing(NutritionPipelineError):
    """Raised at startup when required deployment configuration is absent."""


class CredentialExhausted(NutritionPipelineError):
    """Every credential in the pool failed with a recoverable error."""

    def __init__(self, attempts: int, last_error: str | None = None) -> None:
        message = f"All {attempts} credentials failed"
        if last_error:
            message = f"{message}: {last_error}"
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


AllCredentialsExhausted = CredentialExhausted


class UpstreamFatal(NutritionPipelineError):
    """Upstream answered with a non-recoverable status."""

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"{status_code}: {body}")
        self.status_code = status_code
        self.body = body


class MalformedPayload(NutritionPipelineError):
    """Upstream body could not be parsed into a JSON object."""


class InvalidBarcode(NutritionPipelineError, ValueError):
    """Barcode is not 8 to 14 digits."""
