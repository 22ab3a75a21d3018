from .exceptions import AutoLuksError, MutationError, PreconditionError, ResolutionError, UsageError, ValidationError
from .configurator import AutoLuks

__all__ = [
    "AutoLuks",
    "AutoLuksError",
    "MutationError",
    "PreconditionError",
    "ResolutionError",
    "UsageError",
    "ValidationError",
]
