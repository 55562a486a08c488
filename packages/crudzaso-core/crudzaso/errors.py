"""
Error types for Crudzaso.

Every failure a caller can recover from is one of these. None of them is
fatal: the operation that raised leaves in-memory state untouched.
"""


class CrudzasoError(Exception):
    """Base class for all Crudzaso errors."""

    kind = "error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message, "kind": self.kind}


class ValidationError(CrudzasoError, ValueError):
    """A required field is missing or a value is out of range."""

    kind = "validation"

    def __init__(self, field: str, message: str):
        super().__init__(message)
        self.field = field

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["field"] = self.field
        return result


class ValidationErrors(ValidationError):
    """Several field errors collected while validating a whole form."""

    def __init__(self, errors: dict[str, str]):
        first_field = next(iter(errors), "form")
        super().__init__(first_field, "Please correct the highlighted errors before continuing.")
        self.errors = dict(errors)

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["fields"] = self.errors
        return result


class AuthError(CrudzasoError):
    """Base class for authentication failures."""

    kind = "auth"


class InvalidCredentials(AuthError):
    """Unknown email or wrong password. Deliberately does not say which."""

    kind = "invalid_credentials"

    def __init__(self):
        super().__init__(
            "Invalid email or password. Please check your credentials and try again."
        )


class EmailAlreadyRegistered(AuthError):
    """Registration with an email that already has an account."""

    kind = "email_already_registered"

    def __init__(self, email: str):
        super().__init__("This email is already registered. Try signing in instead.")
        self.email = email


class NotAuthenticated(AuthError):
    """Operation requires an active session and there is none."""

    kind = "not_authenticated"

    def __init__(self):
        super().__init__("Your session has expired. Please sign in again.")


class NotFoundError(CrudzasoError, LookupError):
    """Record missing on lookup, update or delete."""

    kind = "not_found"

    def __init__(self, what: str, record_id: str):
        super().__init__(f"{what} not found: {record_id}")
        self.what = what
        self.record_id = record_id


class StorageError(CrudzasoError):
    """A stored value could not be read or written."""

    kind = "storage"

    def __init__(self, key: str, message: str):
        super().__init__(f"Storage error for '{key}': {message}")
        self.key = key


class ConflictError(CrudzasoError):
    """The stored collection changed since it was loaded."""

    kind = "conflict"

    def __init__(self, key: str, expected: int, found: int):
        super().__init__(
            f"'{key}' was modified elsewhere (expected revision {expected}, found {found}). "
            "Reload and try again."
        )
        self.key = key
        self.expected = expected
        self.found = found
