"""Exception types shared across the studio."""


class StudioError(Exception):
    """Base class for every error raised on purpose by this package."""


class DatasetError(StudioError):
    """The uploaded dataset could not be parsed or is missing a column."""


class StoreError(StudioError):
    """The persisted models table could not be reached or written."""


class RegistryError(StudioError):
    """A registry write failed while the backend is still considered online."""


class ModelNotFoundError(RegistryError):
    def __init__(self, model_id: str):
        super().__init__(f"Model '{model_id}' not found")
        self.model_id = model_id


class TrainingError(StudioError):
    """Real training failed; callers fall back to simulation."""


class ServiceError(StudioError):
    """The optional training/prediction service failed or is unreachable."""
