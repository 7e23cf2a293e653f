"""
Admin authentication API.

Endpoints:
- POST /api/auth/login/    email + password, sets the httpOnly auth-token cookie
- POST /api/auth/logout/   clears the cookie
- GET  /api/auth/me/       current user
"""

import logging

from django.contrib.auth import get_user_model
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.decorators import api_view, authentication_classes, permission_classes, throttle_classes
from rest_framework.permissions import AllowAny, IsAuthenticated

from drcarcold.api.responses import error_response, success_response
from drcarcold.api.serializers import LoginSerializer, UserSerializer
from drcarcold.api.throttling import LoginThrottle
from drcarcold.authentication import clear_auth_cookie, set_auth_cookie

logger = logging.getLogger(__name__)


@extend_schema(
    tags=['Auth'],
    summary='Log in an admin user',
    request=LoginSerializer,
    responses={200: UserSerializer, 400: None, 401: None},
)
@api_view(['POST'])
@authentication_classes([])
@permission_classes([AllowAny])
@throttle_classes([LoginThrottle])
def login(request):
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    email = serializer.validated_data['email']
    password = serializer.validated_data['password']

    user = (
        get_user_model().objects
        .filter(email__iexact=email, is_active=True)
        .order_by('id')
        .first()
    )
    if user is None or not user.check_password(password):
        logger.warning(f"Failed login for {email}")
        return error_response('Invalid email or password', status.HTTP_401_UNAUTHORIZED, request=request)

    response = success_response(UserSerializer(user).data, message='Logged in')
    set_auth_cookie(response, user)
    logger.info(f"User {user.email} logged in")
    return response


@extend_schema(tags=['Auth'], summary='Log out', request=None, responses={200: None})
@api_view(['POST'])
@permission_classes([AllowAny])
def logout(request):
    response = success_response(None, message='Logged out')
    clear_auth_cookie(response)
    return response


@extend_schema(tags=['Auth'], summary='Current user', responses={200: UserSerializer, 401: None})
@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me(request):
    return success_response(UserSerializer(request.user).data)
