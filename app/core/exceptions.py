"""
Custom exceptions for the application

Each exception carries the HTTP status it maps to and a message that is
safe to show to the person filling the waitlist form. Internal details go
in ``details`` and are only logged.
"""

GENERIC_ERROR_MESSAGE = "Une erreur est survenue. Veuillez réessayer."
CONFIGURATION_ERROR_MESSAGE = (
    "Configuration du service email manquante. Veuillez contacter l'administrateur."
)


class BaseAppException(Exception):
    """Base application exception"""
    status_code = 500

    def __init__(self, message: str = GENERIC_ERROR_MESSAGE, details: str = None):
        self.message = message
        self.details = details
        super().__init__(self.message)


class ValidationError(BaseAppException):
    """Raised when validation fails"""
    status_code = 400

    def __init__(self, message: str, details: str = None, field: str = None):
        super().__init__(message, details)
        self.field = field


class ConflictError(BaseAppException):
    """Raised when an email or phone number is already on the waitlist"""
    status_code = 409

    def __init__(self, message: str, details: str = None, field: str = None):
        super().__init__(message, details)
        self.field = field


class ConfigurationError(BaseAppException):
    """Raised when credentials for a required external service are missing"""

    def __init__(self, message: str = CONFIGURATION_ERROR_MESSAGE, details: str = None):
        super().__init__(message, details)


class ExternalServiceError(BaseAppException):
    """Raised when external service calls fail"""
    pass


class DatabaseError(BaseAppException):
    """Raised when database operations fail"""
    pass


class StorageError(BaseAppException):
    """Raised when the waitlist file cannot be read or written"""
    pass
