class AutoLuksError(Exception):
    """Base class for all autoluks errors, any of these results in exit status 1.
    failures holds the individual problems when several were collected before raising."""

    def __init__(self, message, failures=None):
        super().__init__(message)
        self.failures = failures or []


class UsageError(AutoLuksError):
    pass


class PreconditionError(AutoLuksError):
    pass


class ResolutionError(AutoLuksError):
    pass


class ValidationError(AutoLuksError):
    pass


class MutationError(AutoLuksError):
    pass
