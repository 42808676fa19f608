from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

app_name = 'ledger'

router = DefaultRouter()
router.register(r'payments', views.PaymentViewSet, basename='payment')
router.register(r'receipts', views.ReceiptViewSet, basename='receipt')

urlpatterns = [
    # POST   /api/ledger/payments/                      - Record payment / receipt
    # POST   /api/ledger/payments/preview/              - Preview allocation
    # GET    /api/ledger/receipts/                      - Payment history
    # GET    /api/ledger/receipts/{receipt_number}/     - Receipt details
    # GET    /api/ledger/bank-accounts/{id}/transactions/ - Bank account statement
    path('parties/<int:party_id>/outstanding/', views.party_outstanding, name='party-outstanding'),
    path('bills/<int:bill_number>/payments/', views.bill_payments, name='bill-payments'),
    path('totals/', views.totals, name='totals'),
    path('bank-accounts/<int:account_id>/transactions/', views.bank_statement, name='bank-statement'),

    path('', include(router.urls)),
]
