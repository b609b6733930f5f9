from django.contrib import admin
from django.contrib.sitemaps.views import sitemap
from django.urls import path, include
from django.conf import settings
from django.conf.urls.static import static

from jobs import views as job_views
from jobs.sitemaps import sitemaps

from . import views

urlpatterns = [
    path("admin/", admin.site.urls),
    path("", job_views.home, name="home"),
    path("", include("accounts.urls")),
    path("", include("jobs.urls")),
    path("cv/", include("cvs.urls")),
    path("about/", views.about, name="about"),
    path("contact/", views.contact, name="contact"),
    path("privacy/", views.privacy, name="privacy"),
    path("terms/", views.terms, name="terms"),
    path("sitemap.xml", sitemap, {"sitemaps": sitemaps}, name="django.contrib.sitemaps.views.sitemap"),
]

handler404 = "joben.views.page_not_found"
handler500 = "joben.views.server_error"

if settings.DEBUG:
    urlpatterns += static(settings.MEDIA_URL + "logos/", document_root=settings.MEDIA_ROOT / "logos")
