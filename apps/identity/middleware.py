import logging
from django.utils.deprecation import MiddlewareMixin

from .jwt_auth import get_token_from_request, get_user_id_from_token
from .models import User

logger = logging.getLogger(__name__)


class JWTAuthenticationMiddleware(MiddlewareMixin):
    """
    Resolves request.user from a JWT access token.

    Runs after Django's AuthenticationMiddleware: a session user wins,
    otherwise the Bearer header or the access_token cookie is used.
    Invalid or expired tokens leave the request anonymous.
    """

    def process_request(self, request):
        if hasattr(request, 'user') and request.user.is_authenticated:
            return

        token = get_token_from_request(request)
        if not token:
            return

        user_id = get_user_id_from_token(token)
        if not user_id:
            logger.debug("Rejected invalid or expired access token")
            return

        try:
            request.user = User.objects.get(id=user_id, is_active=True)
        except User.DoesNotExist:
            logger.warning(f"Access token for unknown or inactive user {user_id}")
