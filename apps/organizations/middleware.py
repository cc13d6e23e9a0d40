import logging
import uuid
from django.utils.deprecation import MiddlewareMixin
from django.core.exceptions import PermissionDenied

logger = logging.getLogger(__name__)


class TenantMiddleware(MiddlewareMixin):
    """
    Resolves the workspace a request operates on.

    - Members: always their own workspace (request.user.org_id)
    - Superusers: may act on another workspace via X-Organization-ID

    Must run after the authentication middlewares so JWT users are resolved.
    """

    HEADER = 'X-Organization-ID'

    def process_request(self, request):
        request.org_id = None

        user = getattr(request, 'user', None)
        if user is None or not user.is_authenticated:
            return

        request.org_id = getattr(user, 'org_id', None)

        if user.is_superuser:
            header_org = request.headers.get(self.HEADER)
            if header_org:
                try:
                    request.org_id = uuid.UUID(header_org)
                except ValueError:
                    logger.warning(f"Ignoring malformed {self.HEADER} header: {header_org}")

    def process_view(self, request, view_func, view_args, view_kwargs):
        """
        Reject URLs whose `org_id` kwarg points at another workspace.
        """
        user = getattr(request, 'user', None)
        if user is None or not user.is_authenticated or user.is_superuser:
            return None

        url_org_id = view_kwargs.get('org_id')
        if url_org_id and str(url_org_id) != str(request.org_id):
            logger.warning(f"User {user.id} attempted to access workspace {url_org_id}")
            raise PermissionDenied("You do not have access to this workspace.")

        return None
