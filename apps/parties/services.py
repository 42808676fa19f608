"""
Party directory lookups.

The ledger only needs a party's identity, type and display name; creating
and editing suppliers/customers belongs to the master-data screens.
"""

from typing import Optional

from .exceptions import PartyNotFoundError
from .models import Party, PartyType


def get_party_by_id(party_id, *, party_type: Optional[str] = None) -> Party:
    """
    Return an active party by primary key.

    Args:
        party_id: Primary key of the party.
        party_type: Optional ``PartyType`` value the party must have.

    Raises:
        PartyNotFoundError: If no active party matches.
    """
    queryset = Party.objects.filter(is_active=True)
    if party_type:
        queryset = queryset.filter(party_type=party_type)

    try:
        return queryset.get(pk=party_id)
    except (Party.DoesNotExist, ValueError, TypeError):
        raise PartyNotFoundError(f"Party with ID {party_id} not found")


def search_parties(query: str, *, party_type: Optional[str] = None):
    """Case-insensitive name search over active parties."""
    queryset = Party.objects.filter(is_active=True)
    if party_type in PartyType.values:
        queryset = queryset.filter(party_type=party_type)
    if query:
        queryset = queryset.filter(display_name__icontains=query.strip())
    return queryset.order_by('display_name')
