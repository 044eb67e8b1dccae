import json
import logging

from django.contrib.auth import authenticate
from django.http import JsonResponse
from django.views.decorators.csrf import csrf_exempt
from rest_framework.authtoken.models import Token
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny

logger = logging.getLogger(__name__)


def _error(detail: str, status_code: int):
    """Consistent error payload shape across API: {'detail': ...}."""
    return JsonResponse({'detail': detail}, status=status_code)


@csrf_exempt
@api_view(['POST'])
@permission_classes([AllowAny])
def login_view(request):
    """
    Login endpoint that returns a token and the user's back-office role
    """
    try:
        data = json.loads(request.body)
        username = data.get('username')
        password = data.get('password')
    except json.JSONDecodeError:
        return _error('Invalid JSON', 400)

    if not username or not password:
        return _error('Username and password required', 400)

    user = authenticate(username=username, password=password)
    if not user:
        logger.warning(f"Failed login for username={username!r}")
        return _error('Invalid credentials', 401)

    token, _ = Token.objects.get_or_create(user=user)

    return JsonResponse({
        'token': token.key,
        'role': user.role,
        'username': user.username,
    })
