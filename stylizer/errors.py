"""Error taxonomy shared by the store, providers, orchestrator and API."""


class StylizerError(Exception):
    """Base class for all service errors."""


class ConfigurationError(StylizerError):
    """Raised at startup when the selected provider is not usable."""


class UploadValidationError(StylizerError):
    """Uploaded file is missing, of the wrong type or too large."""


class JobNotFoundError(StylizerError):
    def __init__(self, job_id: int):
        super().__init__(f"Image with id {job_id} not found")
        self.job_id = job_id


class JobStateError(StylizerError):
    """An update tried to move a job out of a terminal state."""


class ProviderError(StylizerError):
    """Submit, poll or fetch failed at the transformation provider."""


class ProviderTimeoutError(ProviderError):
    """The provider did not reach a terminal state within the poll ceiling."""


class AnalysisError(StylizerError):
    """Analysis of a result failed. Never surfaced to clients."""
