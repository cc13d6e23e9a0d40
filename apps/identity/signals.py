from django.contrib.auth.signals import user_logged_in
from django.dispatch import receiver
from apps.activity.services import log_activity, ActivityType

@receiver(user_logged_in)
def log_user_login(sender, user, request, **kwargs):
    """
    Record user logins in the workspace activity feed.
    """
    if user and getattr(user, 'org_id', None):
        ip = request.META.get('REMOTE_ADDR') if request else 'Unknown'
        user_agent = request.META.get('HTTP_USER_AGENT', '') if request else ''

        log_activity(
            org_id=user.org_id,
            activity_type=ActivityType.USER_LOGIN,
            title="User signed in",
            description=f"{user.display_name} signed in",
            performed_by=user,
            metadata={
                "ip": ip,
                "user_agent": user_agent,
            },
        )
