"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import logging
from decimal import Decimal, InvalidOperation

from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.views import APIView

from bookings.dependencies import get_booking_service, get_offer_service
from bookings.domain import BookingStatus, Err, OfferInitiator
from bookings.domain.errors import ErrorCode, ErrorKind
from bookings.handlers.serializers import (
    BookingCreateSerializer,
    BookingListQuerySerializer,
    BookingSerializer,
    CancelSerializer,
    OfferAcceptSerializer,
    OfferCreateSerializer,
    OfferRejectSerializer,
    OfferSerializer,
    PaymentCreateSerializer,
    SettlementSummarySerializer,
    StatusUpdateSerializer,
)
from bookings.services.booking_service import BookingRequest
from bookings.services.offer_service import OfferRequest

logger = logging.getLogger(__name__)

# Business-rule conflicts with the current state of the resource.
CONFLICT_CODES = frozenset(
    {
        ErrorCode.INVALID_TRANSITION,
        ErrorCode.INVALID_STATUS_TRANSITION,
        ErrorCode.OFFER_EXPIRED,
    }
)

STATUS_BY_KIND = {
    ErrorKind.VALIDATION_FAILURE: status.HTTP_400_BAD_REQUEST,
    ErrorKind.CURRENCY_MISMATCH: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INVALID_OPERATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.UNAUTHORIZED: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.CONVERSION_FAILED: status.HTTP_503_SERVICE_UNAVAILABLE,
    ErrorKind.SERVER_FAILURE: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(result: Err) -> Response:
    """Render a failed result as ``{"error": {"code", "kind", "message"}}``."""
    if result.code in CONFLICT_CODES:
        http_status = status.HTTP_409_CONFLICT
    else:
        http_status = STATUS_BY_KIND[result.kind]
    message = result.message
    if result.kind is ErrorKind.SERVER_FAILURE:
        logger.error("Request failed with %s", result.code.value)
        message = "An internal error occurred"
    return Response(
        {"error": {"code": result.code.value, "kind": result.kind.value, "message": message}},
        status=http_status,
    )


def invalid_request(errors) -> Response:
    return Response(
        {
            "error": {
                "code": ErrorCode.VALIDATION_FAILURE.value,
                "kind": ErrorKind.VALIDATION_FAILURE.value,
                "message": "Invalid request",
                "fields": errors,
            }
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


def render(result, serializer_class, success_status=status.HTTP_200_OK) -> Response:
    if isinstance(result, Err):
        return error_response(result)
    return Response(serializer_class(result.value).data, status=success_status)


def actor_id(request: Request) -> str:
    return str(request.user.pk)


class OfferCreateView(APIView):
    """Handler for POST /api/offers"""

    def post(self, request: Request) -> Response:
        serializer = OfferCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)
        data = serializer.validated_data
        initiated_by = OfferInitiator(data["initiated_by"])
        actor = actor_id(request)
        if initiated_by is OfferInitiator.SELLER:
            seller_id, buyer_id = actor, data["counterparty_id"]
        else:
            seller_id, buyer_id = data["counterparty_id"], actor

        result = get_offer_service().create_offer(
            OfferRequest(
                seller_id=seller_id,
                buyer_id=buyer_id,
                seller_name=data["seller_name"],
                buyer_name=data.get("buyer_name"),
                custom_price=data["custom_price"],
                description=data["description"],
                initiated_by=initiated_by,
                base_package_id=data.get("base_package_id"),
                base_package_name=data.get("base_package_name"),
                delivery_time=data.get("delivery_time"),
                valid_until=data.get("valid_until"),
                event_date=data.get("event_date"),
                event_name=data.get("event_name"),
            )
        )
        return render(result, OfferSerializer, status.HTTP_201_CREATED)


class OfferDetailView(APIView):
    """Handler for GET /api/offers/{offer_id}"""

    def get(self, request: Request, offer_id: str) -> Response:
        return render(get_offer_service().get_offer(offer_id), OfferSerializer)


class OfferAcceptView(APIView):
    """Handler for POST /api/offers/{offer_id}/accept"""

    def post(self, request: Request, offer_id: str) -> Response:
        serializer = OfferAcceptSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)
        data = serializer.validated_data
        result = get_offer_service().accept_offer(
            offer_id,
            actor_id(request),
            event_name=data["event_name"],
            event_date=data["event_date"],
            event_location=data.get("event_location"),
            notes=data.get("notes"),
        )
        return render(result, BookingSerializer, status.HTTP_201_CREATED)


class OfferRejectView(APIView):
    """Handler for POST /api/offers/{offer_id}/reject"""

    def post(self, request: Request, offer_id: str) -> Response:
        serializer = OfferRejectSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)
        result = get_offer_service().reject_offer(
            offer_id, actor_id(request), serializer.validated_data.get("reason")
        )
        return render(result, OfferSerializer)


class OfferCancelView(APIView):
    """Handler for POST /api/offers/{offer_id}/cancel"""

    def post(self, request: Request, offer_id: str) -> Response:
        return render(get_offer_service().cancel_offer(offer_id, actor_id(request)), OfferSerializer)


class BookingListView(APIView):
    """Handler for GET and POST /api/bookings

    GET lists the caller's bookings, most urgent first. ``?role=supplier``
    lists the bookings the caller supplies; ``?status=`` filters by status.
    """

    def get(self, request: Request) -> Response:
        query = BookingListQuerySerializer(data=request.query_params)
        if not query.is_valid():
            return invalid_request(query.errors)
        status_filter = query.validated_data.get("status")
        status_filter = BookingStatus(status_filter) if status_filter else None
        service = get_booking_service()
        if query.validated_data["role"] == "supplier":
            result = service.list_supplier_bookings(actor_id(request), status_filter)
        else:
            result = service.list_client_bookings(actor_id(request), status_filter)
        if isinstance(result, Err):
            return error_response(result)
        return Response(BookingSerializer(result.value, many=True).data)

    def post(self, request: Request) -> Response:
        serializer = BookingCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)
        data = serializer.validated_data
        result = get_booking_service().create_booking(
            BookingRequest(
                client_id=actor_id(request),
                supplier_id=data["supplier_id"],
                event_name=data["event_name"],
                event_date=data["event_date"],
                total_amount=data["total_amount"],
                package_id=data.get("package_id"),
                package_name=data.get("package_name"),
                event_time=data.get("event_time"),
                event_location=data.get("event_location"),
                notes=data.get("notes"),
            )
        )
        return render(result, BookingSerializer, status.HTTP_201_CREATED)


class BookingDetailView(APIView):
    """Handler for GET /api/bookings/{booking_id}"""

    def get(self, request: Request, booking_id: str) -> Response:
        return render(get_booking_service().get_booking(booking_id), BookingSerializer)


class BookingPaymentView(APIView):
    """Handler for POST /api/bookings/{booking_id}/payments"""

    def post(self, request: Request, booking_id: str) -> Response:
        serializer = PaymentCreateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)
        data = serializer.validated_data
        result = get_booking_service().record_payment(
            booking_id,
            data["amount"],
            data["method"],
            reference=data.get("reference"),
            notes=data.get("notes"),
        )
        return render(result, BookingSerializer, status.HTTP_201_CREATED)


class BookingStatusView(APIView):
    """Handler for POST /api/bookings/{booking_id}/status"""

    def post(self, request: Request, booking_id: str) -> Response:
        serializer = StatusUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)
        data = serializer.validated_data
        result = get_booking_service().update_status(
            booking_id,
            BookingStatus(data["status"]),
            actor_id(request),
            reason=data.get("reason"),
            administrative=request.user.is_staff,
        )
        return render(result, BookingSerializer)


class BookingCancelView(APIView):
    """Handler for POST /api/bookings/{booking_id}/cancel"""

    def post(self, request: Request, booking_id: str) -> Response:
        serializer = CancelSerializer(data=request.data)
        if not serializer.is_valid():
            return invalid_request(serializer.errors)
        result = get_booking_service().cancel_booking(
            booking_id,
            actor_id(request),
            reason=serializer.validated_data.get("reason"),
            administrative=request.user.is_staff,
        )
        return render(result, BookingSerializer)


class BookingSettlementView(APIView):
    """Handler for GET /api/bookings/{booking_id}/settlement

    Accepts ``?tier=<supplier tier>`` or ``?commission_rate=<fraction>``.
    """

    def get(self, request: Request, booking_id: str) -> Response:
        commission_rate = None
        raw_rate = request.query_params.get("commission_rate")
        if raw_rate is not None:
            try:
                commission_rate = Decimal(raw_rate)
            except InvalidOperation:
                commission_rate = None
            if commission_rate is None or not commission_rate.is_finite():
                return invalid_request({"commission_rate": ["A decimal fraction is required."]})
        result = get_booking_service().settlement_summary(
            booking_id,
            commission_rate=commission_rate,
            tier=request.query_params.get("tier"),
        )
        return render(result, SettlementSummarySerializer)
