class FeverPipelineError(Exception):
    """Base class for errors raised by the classification pipeline."""


class MalformedInput(FeverPipelineError, ValueError):
    """Input has no header/data rows or is in an unsupported format."""


class EmptyDataset(FeverPipelineError):
    """No usable rows remain after filtering."""


class ModelUnavailable(FeverPipelineError):
    """Inference was requested before a model was trained in this session."""


class TrainingFailure(FeverPipelineError):
    """The classifier raised while fitting; no model was produced."""
