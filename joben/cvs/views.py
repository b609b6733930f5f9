import logging

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.core.exceptions import PermissionDenied
from django.http import Http404, HttpResponse
from django.shortcuts import render, redirect, get_object_or_404
from django.urls import reverse
from django.utils.http import url_has_allowed_host_and_scheme

from accounts.session import current_profile
from joben.seo import PageMeta
from jobs.models import Application

from .viewer import ZOOM_LEVELS, CVViewError, CVViewer, clamp_zoom

logger = logging.getLogger(__name__)


def _cv_source(request, application_id=None):
    """Return ``(cv_name, title)`` the current user may read.

    Candidates read their own profile CV and the CVs of their own
    applications; employers read CVs of applications to their own jobs.
    """
    profile = current_profile(request)
    if profile is None:
        raise PermissionDenied

    if application_id is None:
        if not profile.cv:
            raise Http404("No CV uploaded")
        return profile.cv.name, "My CV"

    application = get_object_or_404(
        Application.objects.select_related("job", "candidate"), id=application_id
    )
    if profile.is_employer and application.job.employer_id == profile.pk:
        pass
    elif profile.is_candidate and application.candidate_id == profile.pk:
        pass
    else:
        logger.warning("CV access denied: app_id=%s user_id=%s", application_id, profile.pk)
        raise PermissionDenied
    return application.cv.name, f"CV - {application.applicant_name}"


def _page_url(application_id, page: int) -> str:
    if application_id is None:
        return reverse("my_cv_page", args=[page])
    return reverse("application_cv_page", args=[application_id, page])


def _download_url(application_id) -> str:
    if application_id is None:
        return reverse("my_cv_download")
    return reverse("application_cv_download", args=[application_id])


def _back_url(request) -> str:
    back = request.GET.get("back") or ""
    if back and url_has_allowed_host_and_scheme(back, allowed_hosts={request.get_host()}):
        return back
    return ""


@login_required
def cv_viewer(request, application_id=None):
    name, title = _cv_source(request, application_id)
    zoom = clamp_zoom(request.GET.get("zoom"))

    ctx = {
        "title": title,
        "zoom": zoom,
        "zoom_levels": ZOOM_LEVELS,
        "download_url": _download_url(application_id),
        "back_url": _back_url(request),
        "seo": PageMeta(title=title, noindex=True),
    }
    try:
        with CVViewer(name) as viewer:
            ctx["filename"] = viewer.filename
            ctx["is_pdf"] = viewer.is_pdf
            if viewer.is_pdf:
                page_count = viewer.page_count
                try:
                    page = int(request.GET.get("page") or 1)
                except ValueError:
                    page = 1
                ctx["page_count"] = page_count
                page = min(max(page, 1), max(page_count, 1))
                ctx["page"] = page
                ctx["page_url"] = _page_url(application_id, page)
                if page > 1:
                    ctx["prev_page"] = page - 1
                if page < page_count:
                    ctx["next_page"] = page + 1
    except CVViewError as exc:
        messages.error(request, str(exc))
        ctx["is_pdf"] = False
    except (FileNotFoundError, OSError):
        logger.exception("CV open failed: name=%s", name)
        messages.error(request, "The CV file could not be opened.")
        return redirect(_back_url(request) or "home")

    return render(request, "cvs/viewer.html", ctx)


@login_required
def cv_page(request, page, application_id=None):
    name, _ = _cv_source(request, application_id)
    try:
        with CVViewer(name) as viewer:
            if not viewer.is_pdf:
                raise Http404("Preview is only available for PDF files")
            content = viewer.render_page(int(page))
    except CVViewError as exc:
        raise Http404(str(exc)) from exc
    except FileNotFoundError as exc:
        raise Http404("CV not found") from exc

    response = HttpResponse(content, content_type="application/pdf")
    response["Content-Disposition"] = f'inline; filename="page-{page}.pdf"'
    response["X-Frame-Options"] = "SAMEORIGIN"
    return response


@login_required
def cv_download(request, application_id=None):
    name, _ = _cv_source(request, application_id)
    try:
        with CVViewer(name) as viewer:
            content = viewer.read()
            filename = viewer.filename
            content_type = "application/pdf" if viewer.is_pdf else "application/octet-stream"
    except FileNotFoundError as exc:
        raise Http404("CV not found") from exc

    response = HttpResponse(content, content_type=content_type)
    response["Content-Disposition"] = f'attachment; filename="{filename}"'
    logger.info("CV downloaded: name=%s user_id=%s", name, request.user.pk)
    return response
