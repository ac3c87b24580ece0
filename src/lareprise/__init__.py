"""LaReprise - Réconciliation des sources et décision GO / NO-GO pour la reprise d'un commerce."""

from lareprise.config import (
    ConfigError,
    ConfigFileError,
    InputError,
    LaRepriseError,
    MalformedInputError,
    MissingInputError,
)

__all__ = [
    "__version__",
    "LaRepriseError",
    "ConfigError",
    "ConfigFileError",
    "InputError",
    "MissingInputError",
    "MalformedInputError",
]

__version__ = "0.1.0"
