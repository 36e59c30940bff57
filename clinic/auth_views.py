"""
Authentication views.

Username/password login hands out both the legacy DRF token (``Token``
header) and a JWT pair. Kept apart from ``clinic.authentication`` so that
DRF can import the authentication class without pulling in the views.
"""
from __future__ import annotations

import logging

from django.contrib.auth import authenticate
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken, OutstandingToken
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.serializers import TokenRefreshSerializer

from clinic.serializers.auth import LoginSerializer, LogoutSerializer
from clinic.services.audit import log_action

logger = logging.getLogger(__name__)


def user_summary(user) -> dict:
    return {
        'id': user.id,
        'username': user.username,
        'name': user.get_full_name() or user.username,
        'role': user.role,
    }


@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """Login with username/password. A ``role`` field in the body is ignored."""
    s = LoginSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    username = s.validated_data['username']
    password = s.validated_data['password']
    ip = request.META.get('REMOTE_ADDR')

    user = authenticate(request, username=username, password=password)
    if not user:
        log_action(user=None, action='login', object_type='user',
                   detail={'result': 'fail', 'username': username, 'ip': ip})
        logger.info(f"Failed login for {username} from {ip}")
        return Response({'ok': False, 'detail': 'Invalid username or password.'}, status=400)

    log_action(user=user, action='login', object_type='user', object_id=user.id,
               detail={'result': 'ok', 'ip': ip})

    token_obj, _ = Token.objects.get_or_create(user=user)
    refresh = RefreshToken.for_user(user)
    return Response({
        'ok': True,
        'token': token_obj.key,
        'jwt_access': str(refresh.access_token),
        'jwt_refresh': str(refresh),
        'role': user.role,
        'user': user_summary(user),
    })

# DRF ScopedRateThrottle uses throttle_scope on the view function
login_view.throttle_scope = 'login'


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def me_view(request):
    return Response({'ok': True, 'user': user_summary(request.user)})


@api_view(['POST'])
@permission_classes([AllowAny])
def jwt_refresh_view(request):
    """Return a new access token from a refresh token."""
    s = TokenRefreshSerializer(data=request.data)
    try:
        s.is_valid(raise_exception=True)
    except TokenError as e:
        raise InvalidToken(e.args[0])
    data = dict(s.validated_data)
    data['jwt_access'] = data.pop('access')
    if 'refresh' in data:
        data['jwt_refresh'] = data.pop('refresh')
    return Response({'ok': True, **data})


@api_view(['POST'])
@permission_classes([IsAuthenticated])
def jwt_logout_view(request):
    """Blacklist the given refresh token, or every outstanding one of the user."""
    s = LogoutSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    refresh = s.validated_data.get('refresh')
    count = 0
    if refresh:
        try:
            token = RefreshToken(refresh)
        except TokenError as e:
            raise ValidationError({'refresh': str(e)})
        if str(token.get('user_id')) != str(request.user.id):
            raise ValidationError({'refresh': 'Token does not belong to this user.'})
        token.blacklist()
        count = 1
    else:
        for token in OutstandingToken.objects.filter(user=request.user):
            _, created = BlacklistedToken.objects.get_or_create(token=token)
            count += int(created)
    log_action(user=request.user, action='logout', object_type='user', object_id=request.user.id,
               detail={'blacklisted': count})
    return Response({'ok': True, 'blacklisted': count})
