"""
URL configuration for the RankRent back office.
"""
from django.contrib import admin
from django.urls import path
from django.conf import settings
from django.conf.urls.static import static
from ninja import NinjaAPI

api = NinjaAPI(
    title="RankRent API",
    version="1.0.0",
    description="Rank-and-rent website portfolio, SEO and telephony back office API",
    docs_url="/docs",
)

from apps.identity.api import router as identity_router
from apps.identity.security_api import router as security_questions_router
from apps.organizations.api import router as organizations_router
from apps.activity.api import router as activity_router
from apps.dashboard.api import router as dashboard_router
from apps.websites.api import router as websites_router
from apps.leads.api import router as leads_router
from apps.clients.api import router as clients_router
from apps.taskboard.api import router as tasks_router
from apps.seo.api import (
    router as seo_router,
    keyword_router,
    saved_keyword_router,
    snapshot_router,
)
from apps.telephony.api import (
    router as telephony_router,
    forwarding_router,
    billing_router,
)
from apps.videos.api import router as videos_router

api.add_router("/auth/", identity_router)
api.add_router("/security-questions/", security_questions_router)
api.add_router("/organizations/", organizations_router)
api.add_router("/activity/", activity_router)
api.add_router("/dashboard/", dashboard_router)
api.add_router("/websites/", websites_router)
api.add_router("/leads/", leads_router)
api.add_router("/clients/", clients_router)
api.add_router("/tasks/", tasks_router)
api.add_router("/seo/", seo_router)
api.add_router("/keyword-tracking/", keyword_router)
api.add_router("/saved-keywords/", saved_keyword_router)
api.add_router("/analytics-snapshots/", snapshot_router)
api.add_router("/twilio/", telephony_router)
api.add_router("/call-forwarding/", forwarding_router)
api.add_router("/billing/", billing_router)
api.add_router("/videos/", videos_router)


@api.get("/health", auth=None, tags=["Health"])
def health(request):
    return {"status": "OK"}


urlpatterns = [
    path('admin/', admin.site.urls),
    path('api/', api.urls),
]

# Serve media files in development
if settings.DEBUG:
    urlpatterns += static(
        getattr(settings, 'MEDIA_URL', '/media/'),
        document_root=getattr(settings, 'MEDIA_ROOT', settings.BASE_DIR / 'media')
    )
