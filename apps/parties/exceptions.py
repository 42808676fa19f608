"""
Domain exceptions for the party directory.
"""


class PartiesServiceError(Exception):
    """Base exception for party directory errors."""

    code = 'parties_error'


class PartyNotFoundError(PartiesServiceError):
    """Raised when a party does not exist or is inactive."""

    code = 'party_not_found'
