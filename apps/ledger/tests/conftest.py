import pytest
from decimal import Decimal
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken
from apps.accounts.models import User
from apps.parties.models import Party, PartyType
from apps.ledger.models import BankAccount, Bill, BillKind


@pytest.fixture
def api_client():
    """Return an unauthenticated API client."""
    return APIClient()


@pytest.fixture
def clerk(db):
    """Create and return the operator entering payments."""
    return User.objects.create_user(
        email='clerk@example.com',
        password='TestPass123!',
        display_name='Front Office Clerk',
        counter_name='Counter 1',
    )


@pytest.fixture
def clerk_client(api_client, clerk):
    """Return API client authenticated as the clerk."""
    refresh = RefreshToken.for_user(clerk)
    api_client.credentials(HTTP_AUTHORIZATION=f'Bearer {refresh.access_token}')
    return api_client


@pytest.fixture
def supplier(db):
    """Create and return a supplier."""
    return Party.objects.create(
        display_name='Fresh Farm Vegetables',
        party_type=PartyType.SUPPLIER,
    )


@pytest.fixture
def other_supplier(db):
    """Create and return a second supplier."""
    return Party.objects.create(
        display_name='Coastal Seafood Traders',
        party_type=PartyType.SUPPLIER,
    )


@pytest.fixture
def customer(db):
    """Create and return a customer."""
    return Party.objects.create(
        display_name='Hotel Grand Banquets',
        party_type=PartyType.CUSTOMER,
    )


@pytest.fixture
def make_bill(db):
    """Factory for bills; the kind follows the party type."""
    def _make_bill(party, net_amount, **kwargs):
        kind = BillKind.PURCHASE if party.is_supplier else BillKind.SALES
        return Bill.objects.create(
            party=party,
            kind=kwargs.pop('kind', kind),
            net_amount=Decimal(net_amount),
            **kwargs
        )
    return _make_bill


@pytest.fixture
def bill_a(make_bill, supplier):
    """Older purchase bill of 1000."""
    return make_bill(supplier, '1000.00', reference_number='INV-A')


@pytest.fixture
def bill_b(make_bill, supplier, bill_a):
    """Newer purchase bill of 500."""
    return make_bill(supplier, '500.00', reference_number='INV-B')


@pytest.fixture
def sales_bills(make_bill, customer):
    """Two customer bills with balances 200 and 300."""
    return [
        make_bill(customer, '200.00', reference_number='C1'),
        make_bill(customer, '300.00', reference_number='C2'),
    ]


@pytest.fixture
def bank_account(db):
    """Current account with an opening balance of 10000."""
    return BankAccount.objects.create(
        bank_name='State Bank of India',
        account_number='30012345678',
        branch_name='Fort',
        current_balance=Decimal('10000.00'),
    )


@pytest.fixture
def cash_drawer(db):
    """Empty cash drawer."""
    return BankAccount.objects.create(
        bank_name='Cash drawer',
        account_number='CASH-01',
        is_cash=True,
    )
