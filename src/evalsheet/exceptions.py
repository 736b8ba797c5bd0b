class EvalSheetError(Exception):
    """Base exception for evalsheet errors."""
    pass

class ConfigError(EvalSheetError):
    """Configuration loading specific errors."""
    pass

class DataSourceError(EvalSheetError):
    """The uploaded workbook could not be opened or read."""
    pass

class StorageError(EvalSheetError):
    """The response store failed; the surrounding transaction was rolled back."""
    pass

class TemplateNotFoundError(EvalSheetError):
    pass

class TemplateConflictError(EvalSheetError):
    """A template category name is already used by a template that still has responses."""
    pass

class ResponseNotFoundError(EvalSheetError):
    pass
