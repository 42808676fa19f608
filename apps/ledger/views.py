from rest_framework import viewsets, status
from rest_framework.decorators import action, api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.pagination import PageNumberPagination
from django.utils import timezone
from drf_spectacular.utils import extend_schema, OpenApiParameter

from apps.parties.exceptions import PartyNotFoundError

from .serializers import (
    RecordPaymentInputSerializer,
    PreviewPaymentInputSerializer,
    HistoryFilterSerializer,
    TotalsQuerySerializer,
    StatementQuerySerializer,
    AllocationSerializer,
    ReceiptSerializer,
    PreviewLineSerializer,
    OutstandingResponseSerializer,
    TotalsResponseSerializer,
    BankStatementResponseSerializer,
    ErrorSerializer,
)
from .services import (
    record_payment,
    preview_payment,
    payment_history,
    get_receipt,
    list_outstanding,
    party_balance_summary,
    bill_payment_history,
    aggregate_totals,
    summary_totals,
    get_bank_account,
    account_transactions,
    # Exceptions
    LedgerServiceError,
    BillNotFoundError,
    BankAccountNotFoundError,
    ConcurrencyConflictError,
    InvariantViolation,
    ReceiptNotFoundError,
)


def error_response(exc, status_code=None):
    """Convert a service exception into the ledger error body."""
    if status_code is None:
        if isinstance(exc, (PartyNotFoundError, ReceiptNotFoundError)):
            status_code = status.HTTP_404_NOT_FOUND
        elif isinstance(exc, ConcurrencyConflictError):
            status_code = status.HTTP_409_CONFLICT
        elif isinstance(exc, InvariantViolation):
            status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
        else:
            status_code = status.HTTP_400_BAD_REQUEST

    return Response({
        'error': str(exc),
        'code': exc.code,
        'detail': getattr(exc, 'detail', {}),
    }, status=status_code)


class ReceiptPagination(PageNumberPagination):
    """Custom pagination for payment history."""
    page_size = 50
    page_size_query_param = 'page_size'
    max_page_size = 200


class PaymentViewSet(viewsets.ViewSet):
    """
    Payment entry.

    All business logic is handled by services.
    Views are thin HTTP handlers only.

    create: Record a payment / receipt against selected bills
    preview: Show the oldest-first split without saving
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        request=RecordPaymentInputSerializer,
        parameters=[
            OpenApiParameter(
                name='Idempotency-Key',
                location=OpenApiParameter.HEADER,
                required=False,
                description='Resubmitting the same key returns the original receipt.',
            ),
        ],
        responses={
            201: ReceiptSerializer,
            200: ReceiptSerializer,
            400: ErrorSerializer,
            404: ErrorSerializer,
            409: ErrorSerializer,
        },
        tags=['ledger'],
    )
    def create(self, request):
        """Record a payment. Returns 201 for a new receipt, 200 for a replay."""
        serializer = RecordPaymentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        idempotency_key = (
            data.get('idempotency_key')
            or request.headers.get('Idempotency-Key', '')
        )

        try:
            result = record_payment(
                party_id=data['party_id'],
                amount=data['amount'],
                payment_mode=data['payment_mode'],
                bill_numbers=data['bill_numbers'],
                bank_reference=data.get('bank_reference', ''),
                remarks=data.get('remarks', ''),
                recorded_by=request.user,
                idempotency_key=idempotency_key,
                bank_account_id=data.get('bank_account_id'),
            )
        except (LedgerServiceError, PartyNotFoundError) as e:
            return error_response(e)

        output_serializer = ReceiptSerializer(get_receipt(result.receipt.receipt_number))
        return Response(
            output_serializer.data,
            status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK
        )

    @extend_schema(
        request=PreviewPaymentInputSerializer,
        responses={200: PreviewLineSerializer(many=True), 400: ErrorSerializer},
        tags=['ledger'],
    )
    @action(detail=False, methods=['post'])
    def preview(self, request):
        """Preview how a payment would be split across bills."""
        serializer = PreviewPaymentInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        try:
            lines = preview_payment(
                party_id=data['party_id'],
                amount=data['amount'],
                bill_numbers=data['bill_numbers'],
            )
        except (LedgerServiceError, PartyNotFoundError) as e:
            return error_response(e)

        return Response(PreviewLineSerializer(lines, many=True).data)


class ReceiptViewSet(viewsets.ViewSet):
    """
    Payment history.

    list: Receipts in a date range, optionally searched by party name
    retrieve: One receipt with its allocations
    """

    permission_classes = [IsAuthenticated]
    lookup_field = 'receipt_number'
    lookup_value_regex = r'\d+'

    @extend_schema(
        parameters=[HistoryFilterSerializer],
        responses={200: ReceiptSerializer(many=True)},
        tags=['ledger'],
    )
    def list(self, request):
        """Get payment history for a date range."""
        filter_serializer = HistoryFilterSerializer(data=request.query_params)
        filter_serializer.is_valid(raise_exception=True)
        params = filter_serializer.validated_data

        today = timezone.localdate()
        try:
            receipts = payment_history(
                params.get('date_from', today.replace(day=1)),
                params.get('date_to', today),
                search_text=params.get('search'),
                direction=params.get('direction'),
                party_id=params.get('party'),
            )
        except LedgerServiceError as e:
            return error_response(e)

        paginator = ReceiptPagination()
        page = paginator.paginate_queryset(receipts, request, view=self)
        serializer = ReceiptSerializer(page, many=True)
        return paginator.get_paginated_response(serializer.data)

    @extend_schema(
        responses={200: ReceiptSerializer, 404: ErrorSerializer},
        tags=['ledger'],
    )
    def retrieve(self, request, receipt_number=None):
        """Get a single receipt."""
        try:
            receipt = get_receipt(receipt_number)
        except ReceiptNotFoundError as e:
            return error_response(e)

        return Response(ReceiptSerializer(receipt).data)


@extend_schema(
    responses={200: OutstandingResponseSerializer, 404: ErrorSerializer},
    description="Outstanding bills of a party, oldest first, with balance totals.",
    tags=['ledger'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def party_outstanding(request, party_id):
    """Get a party's unpaid bills and balance summary."""
    try:
        summary = party_balance_summary(party_id)
        bills = list_outstanding(party_id).select_related('party')
    except PartyNotFoundError as e:
        return error_response(e)

    serializer = OutstandingResponseSerializer({'summary': summary, 'bills': bills})
    return Response(serializer.data)


@extend_schema(
    responses={200: AllocationSerializer(many=True), 404: ErrorSerializer},
    description="Every payment applied to a bill.",
    tags=['ledger'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def bill_payments(request, bill_number):
    """Get allocation history for one bill."""
    try:
        allocations = bill_payment_history(bill_number)
    except BillNotFoundError as e:
        return error_response(e, status.HTTP_404_NOT_FOUND)

    return Response(AllocationSerializer(allocations, many=True).data)


@extend_schema(
    parameters=[TotalsQuerySerializer],
    responses={200: TotalsResponseSerializer, 400: ErrorSerializer},
    description="Total paid in a date range, or today's and this month's totals.",
    tags=['ledger'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def totals(request):
    """Get running totals of committed payments."""
    query_serializer = TotalsQuerySerializer(data=request.query_params)
    query_serializer.is_valid(raise_exception=True)
    params = query_serializer.validated_data
    direction = params.get('direction')

    try:
        if params.get('date_from'):
            data = {
                'date_from': params['date_from'],
                'date_to': params['date_to'],
                'direction': direction,
                'total': aggregate_totals(
                    params['date_from'],
                    params['date_to'],
                    direction=direction,
                    party_id=params.get('party'),
                ),
            }
        else:
            summary = summary_totals(direction=direction)
            data = {
                'date_to': summary['date'],
                'direction': direction,
                'today': summary['today'],
                'this_month': summary['this_month'],
            }
    except LedgerServiceError as e:
        return error_response(e)

    return Response(TotalsResponseSerializer(data).data)


@extend_schema(
    parameters=[StatementQuerySerializer],
    responses={200: BankStatementResponseSerializer, 404: ErrorSerializer},
    description="Postings on a bank or cash account with its current balance.",
    tags=['ledger'],
)
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def bank_statement(request, account_id):
    """Get the payment postings of one bank or cash account."""
    query_serializer = StatementQuerySerializer(data=request.query_params)
    query_serializer.is_valid(raise_exception=True)
    params = query_serializer.validated_data

    try:
        account = get_bank_account(account_id, active_only=False)
        transactions = account_transactions(
            account_id,
            params.get('date_from'),
            params.get('date_to'),
        )
    except BankAccountNotFoundError as e:
        return error_response(e, status.HTTP_404_NOT_FOUND)

    serializer = BankStatementResponseSerializer({
        'account': account,
        'transactions': transactions,
    })
    return Response(serializer.data)
