import logging

from django.contrib import messages
from django.db import DatabaseError
from django.shortcuts import render, redirect
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_http_methods, require_POST

from cvs.storage import delete_cv, delete_logo, upload_cv, upload_logo
from joben.seo import PageMeta
from jobs.models import Application
from jobs.queries import invalidate_applications, invalidate_employer_jobs

from .decorators import candidate_required, employer_required
from .forms import CandidateProfileForm, CompanyProfileForm, LoginForm, RegistrationForm
from .models import User
from .session import current_profile, sign_in, sign_out, sign_up

logger = logging.getLogger(__name__)


def _safe_next(request) -> str | None:
    next_url = request.POST.get("next") or request.GET.get("next")
    if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
        return next_url
    return None


def _dashboard_for(role: str) -> str:
    return "employer_dashboard" if role == User.Role.EMPLOYER else "candidate_dashboard"


# -----------------------------
# Login / Register / Logout
# -----------------------------
@require_http_methods(["GET", "POST"])
def user_login(request):
    if request.user.is_authenticated:
        return redirect(_dashboard_for(request.user.role))

    if request.method == "POST":
        form = LoginForm(request.POST)
        if form.is_valid():
            result = sign_in(request, email=form.cleaned_data["email"], password=form.cleaned_data["password"])
            if result.ok:
                messages.success(request, "Logged in successfully!")
                return redirect(_safe_next(request) or _dashboard_for(result.user.role))
            messages.error(request, result.error)
    else:
        form = LoginForm()
        if request.GET.get("next"):
            messages.info(request, "Please sign in to continue.")

    return render(
        request,
        "accounts/login.html",
        {"form": form, "next": _safe_next(request) or "", "seo": PageMeta(title="Sign in", noindex=True)},
    )


@require_http_methods(["GET", "POST"])
def register(request):
    if request.user.is_authenticated:
        return redirect(_dashboard_for(request.user.role))

    if request.method == "POST":
        form = RegistrationForm(request.POST)
        if form.is_valid():
            data = form.cleaned_data
            result = sign_up(
                request,
                email=data["email"],
                password=data["password"],
                full_name=data["full_name"],
                role=data["role"],
                company_name=data["company_name"],
            )
            if result.ok:
                messages.success(request, "Account created. Welcome to Joben!")
                return redirect(_dashboard_for(result.user.role))
            if "already registered" in result.error:
                form.add_error("email", "An account with this email already exists.")
            else:
                messages.error(request, f"Registration failed: {result.error}")
        else:
            logger.info("Registration rejected: errors=%s", form.errors.as_json())
    else:
        form = RegistrationForm(initial={"role": request.GET.get("role") or User.Role.CANDIDATE})

    return render(request, "accounts/register.html", {"form": form, "seo": PageMeta(title="Create account", noindex=True)})


@require_http_methods(["POST", "GET"])
def user_logout(request):
    sign_out(request)
    messages.info(request, "Logged out successfully.")
    return redirect("home")


# -----------------------------
# Employer: company profile
# -----------------------------
def _save_company_profile(request, profile, form) -> bool:
    profile = form.save(commit=False)
    logo = form.cleaned_data.get("logo")
    old_logo = profile.company_logo.name if profile.company_logo else ""
    try:
        if logo:
            profile.company_logo = upload_logo(logo, profile.pk)
        profile.save()
    except (OSError, DatabaseError) as exc:
        logger.exception("Company profile save failed: user_id=%s", profile.pk)
        messages.error(request, f"Could not save the company profile: {exc}")
        return False
    if logo and old_logo:
        delete_logo(old_logo)
    # Applicants see the company through their cached application rows.
    for candidate_id in (
        Application.objects.filter(job__employer=profile, candidate__isnull=False)
        .values_list("candidate_id", flat=True)
        .distinct()
    ):
        invalidate_applications(candidate_id=candidate_id)
    invalidate_employer_jobs(profile.pk)
    logger.info("Company profile saved: user_id=%s company=%s", profile.pk, profile.company_name)
    return True


@employer_required
@require_http_methods(["GET", "POST"])
def employer_onboarding(request):
    profile = current_profile(request)
    if request.method == "POST":
        form = CompanyProfileForm(request.POST, request.FILES, instance=profile)
        if form.is_valid() and _save_company_profile(request, profile, form):
            messages.success(request, "Company profile saved.")
            return redirect("employer_dashboard")
    else:
        form = CompanyProfileForm(instance=profile)
    return render(request, "accounts/onboarding.html", {"form": form, "seo": PageMeta(title="Company profile", noindex=True)})


@employer_required
@require_POST
def company_profile_update(request):
    profile = current_profile(request)
    form = CompanyProfileForm(request.POST, request.FILES, instance=profile)
    if form.is_valid():
        if _save_company_profile(request, profile, form):
            messages.success(request, "Company profile updated.")
    else:
        for errors in form.errors.values():
            messages.error(request, errors[0])
    return redirect("employer_dashboard")


# -----------------------------
# Candidate: personal profile + CV
# -----------------------------
@candidate_required
@require_POST
def candidate_profile_update(request):
    profile = current_profile(request)
    form = CandidateProfileForm(request.POST, request.FILES, instance=profile)
    if not form.is_valid():
        for errors in form.errors.values():
            messages.error(request, errors[0])
        return redirect("candidate_dashboard")

    profile = form.save(commit=False)
    upload = form.cleaned_data.get("cv_file")
    old_cv = profile.cv.name if profile.cv else ""
    try:
        if upload:
            profile.cv = upload_cv(upload, str(profile.pk))
        profile.save()
    except (OSError, DatabaseError) as exc:
        logger.exception("Candidate profile save failed: user_id=%s", profile.pk)
        messages.error(request, f"Could not save your profile: {exc}")
        return redirect("candidate_dashboard")

    # Older applications keep pointing at the previous CV.
    if upload and old_cv and not Application.objects.filter(cv=old_cv).exists():
        delete_cv(old_cv)
    for employer_id in (
        Application.objects.filter(candidate=profile).values_list("job__employer_id", flat=True).distinct()
    ):
        invalidate_applications(employer_id=employer_id)
    invalidate_applications(candidate_id=profile.pk)
    logger.info("Candidate profile saved: user_id=%s cv_replaced=%s", profile.pk, bool(upload))
    messages.success(request, "Profile updated.")
    return redirect(_safe_next(request) or "candidate_dashboard")
