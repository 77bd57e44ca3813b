import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.response import Response
from rest_framework.permissions import IsAuthenticated

from drivers.services import get_driver_for_user
from services.claims.exceptions import (
    ActiveRequestExistsError,
    DriverNotFoundError,
    InvalidLocationError,
    InvalidTripTransitionError,
    MatchingError,
    RequestNotFoundError,
    ServiceUnavailableError,
    StatePreconditionError,
    TransientStoreError,
    TripNotFoundError,
)
from services import request_management
from .serializers import (
    AssistanceRequestCreateSerializer,
    AssistanceRequestSerializer,
    RequestCancelSerializer,
    TripLocationSerializer,
    TripSerializer,
    TripStatusSerializer,
)

logger = logging.getLogger(__name__)


def error_response(exc: MatchingError) -> Response:
    """Map a service exception to an HTTP response."""
    if isinstance(exc, (RequestNotFoundError, TripNotFoundError)):
        return Response({'error': str(exc)}, status=status.HTTP_404_NOT_FOUND)
    if isinstance(exc, StatePreconditionError):
        return Response({'error': exc.user_message}, status=status.HTTP_409_CONFLICT)
    if isinstance(exc, (ActiveRequestExistsError, InvalidTripTransitionError)):
        return Response({'error': str(exc)}, status=status.HTTP_409_CONFLICT)
    if isinstance(exc, TransientStoreError):
        return Response(
            {'error': 'The request is busy, please try again'},
            status=status.HTTP_503_SERVICE_UNAVAILABLE
        )
    if isinstance(exc, (InvalidLocationError, ServiceUnavailableError)):
        return Response({'error': str(exc)}, status=status.HTTP_400_BAD_REQUEST)

    logger.error("Unmapped service error: %s", exc)
    return Response({'error': str(exc)}, status=status.HTTP_400_BAD_REQUEST)


def _driver_or_error(user):
    if not user.is_driver:
        return None, Response(
            {'error': 'Only drivers can perform this action'},
            status=status.HTTP_403_FORBIDDEN
        )
    try:
        return get_driver_for_user(user), None
    except DriverNotFoundError:
        return None, Response(
            {'error': 'Driver profile not found'},
            status=status.HTTP_404_NOT_FOUND
        )


# ==================== Commuter Request APIs ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def create_request(request):
    """Create a new assistance request and start looking for a driver"""
    if not request.user.is_commuter:
        return Response(
            {'error': 'Only commuters can create assistance requests'},
            status=status.HTTP_403_FORBIDDEN
        )

    serializer = AssistanceRequestCreateSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = request_management.create_assistance_request(request.user, **serializer.validated_data)
    except MatchingError as e:
        return error_response(e)

    return Response({
        **AssistanceRequestSerializer(result.request).data,
        'message': result.message,
    }, status=status.HTTP_201_CREATED)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_current_request(request):
    """Get the commuter's active (searching or claimed) request"""
    active = request_management.get_active_request(request.user)
    if not active:
        return Response(
            {'message': 'No active request'},
            status=status.HTTP_404_NOT_FOUND
        )
    return Response(AssistanceRequestSerializer(active).data)


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def get_request(request, request_id):
    try:
        assistance_request = request_management.get_request_for_requester(request.user, request_id)
    except MatchingError as e:
        return error_response(e)
    return Response(AssistanceRequestSerializer(assistance_request).data)


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def cancel_request(request, request_id):
    """Cancel a searching or claimed request"""
    serializer = RequestCancelSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    reason = serializer.validated_data.get('reason') or 'Cancelled by commuter'
    try:
        result = request_management.cancel_request(request.user, request_id, reason)
    except MatchingError as e:
        return error_response(e)

    return Response({
        **AssistanceRequestSerializer(result.request).data,
        'message': result.message,
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def searching_requests(request):
    """HTTP fallback for the ws/dispatch/ live query"""
    requests = request_management.searching_requests()
    serializer = AssistanceRequestSerializer(requests, many=True)
    return Response({'requests': serializer.data, 'count': len(serializer.data)})


# ==================== Driver Claim Actions ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def accept_request(request, request_id):
    """Driver accepts the request they hold a claim on; a trip starts"""
    driver, error = _driver_or_error(request.user)
    if error:
        return error

    try:
        result = request_management.accept_claimed_request(driver, request_id)
    except MatchingError as e:
        return error_response(e)

    return Response({
        'message': result.message,
        'request': AssistanceRequestSerializer(result.request).data,
        'trip': TripSerializer(result.trip).data,
    })


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def decline_request(request, request_id):
    """Driver hands a claimed request back; the next driver is tried"""
    driver, error = _driver_or_error(request.user)
    if error:
        return error

    try:
        result = request_management.decline_claimed_request(driver, request_id)
    except MatchingError as e:
        return error_response(e)

    return Response({'message': result.message, 'request_id': result.request.id})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def driver_cancel_request(request, request_id):
    """Driver holding the claim cancels the request outright"""
    driver, error = _driver_or_error(request.user)
    if error:
        return error

    serializer = RequestCancelSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    reason = serializer.validated_data.get('reason') or 'Cancelled by driver'
    try:
        result = request_management.cancel_claimed_request(driver, request_id, reason)
    except MatchingError as e:
        return error_response(e)

    return Response({
        **AssistanceRequestSerializer(result.request).data,
        'message': result.message,
    })


# ==================== Trip APIs ====================

@api_view(['POST'])
@permission_classes([IsAuthenticated])
def update_trip_status(request, trip_id):
    driver, error = _driver_or_error(request.user)
    if error:
        return error

    serializer = TripStatusSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = request_management.update_trip_status(driver, trip_id, serializer.validated_data['status'])
    except MatchingError as e:
        return error_response(e)

    return Response({**TripSerializer(result.trip).data, 'message': result.message})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def record_trip_location(request, trip_id):
    """Append a GPS point to the trip's path log"""
    driver, error = _driver_or_error(request.user)
    if error:
        return error

    serializer = TripLocationSerializer(data=request.data)
    if not serializer.is_valid():
        return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

    try:
        result = request_management.record_trip_location(
            driver,
            trip_id,
            serializer.validated_data['latitude'],
            serializer.validated_data['longitude'],
        )
    except MatchingError as e:
        return error_response(e)

    return Response({'trip_id': result.trip.id, **result.extra})
