class ReferenceConfigurationException(ValueError):
    """Exception raised when a reference property is declared inconsistently."""

    def __init__(self, message: str = "The reference property is not configured correctly."):
        super().__init__(message)


class ExpressionEvaluationException(ValueError):
    """Exception raised when a template or expression cannot be evaluated."""

    def __init__(self, message: str = "Expression evaluation failed."):
        super().__init__(message)


class ReferenceLookupException(RuntimeError):
    """Exception raised when the datastore fails while loading referenced documents."""

    def __init__(self, message: str = "Loading referenced documents failed."):
        super().__init__(message)
