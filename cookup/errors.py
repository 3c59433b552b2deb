"""
Exception types shared across CookUp
"""


class CookUpError(Exception):
    """Base class for all CookUp errors."""


class LocalStorageError(CookUpError):
    """Reading or writing on-device preferences failed."""


class RemoteStoreError(CookUpError):
    """A Firestore read or write failed."""


class AuthenticationError(CookUpError):
    """An ID token could not be verified."""


class MealServiceError(CookUpError):
    """Base class for TheMealDB client errors."""


class RequestFailedError(MealServiceError):
    """Transport failure or non-2xx response from TheMealDB."""


class DecodingError(MealServiceError):
    """TheMealDB returned a payload that could not be decoded."""
