"""
Categorizer exceptions
"""


class CategorizerError(Exception):
    """Base class for categorization pipeline errors"""


class ReferenceDataError(CategorizerError):
    """Reference tables could not be loaded (fatal for a classification pass)"""


class RegistryLookupError(CategorizerError):
    """A registry backend failed while resolving a merchant name"""
