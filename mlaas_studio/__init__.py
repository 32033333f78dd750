"""MLaaS studio package."""

# resolved lazily so ``import mlaas_studio`` stays cheap

__all__ = ["ModelRegistry", "TrainingSimulator", "parse_csv_text"]


def __getattr__(name):
    if name == "ModelRegistry":
        from .registry.registry import ModelRegistry
        return ModelRegistry
    if name == "TrainingSimulator":
        from .training.simulators import TrainingSimulator
        return TrainingSimulator
    if name == "parse_csv_text":
        from .data.ingest import parse_csv_text
        return parse_csv_text
    raise AttributeError(name)
