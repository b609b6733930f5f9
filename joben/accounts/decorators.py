from functools import wraps

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.shortcuts import redirect

from .models import User
from .session import current_profile


def role_required(role: str):
    """Ensure the logged-in user's profile has the given role."""
    def decorator(view_func):
        @login_required
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            profile = current_profile(request)
            if profile is None:
                messages.error(request, "We could not load your profile. Please try again.")
                return redirect("home")
            if profile.role != role:
                messages.error(request, "Access denied.")
                return redirect("home")
            return view_func(request, *args, **kwargs)
        return _wrapped
    return decorator


employer_required = role_required(User.Role.EMPLOYER)
candidate_required = role_required(User.Role.CANDIDATE)


def company_required(view_func):
    """Employer views that need a company profile; others are sent to onboarding."""
    @employer_required
    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if current_profile(request).needs_onboarding:
            messages.info(request, "Please complete your company profile first.")
            return redirect("employer_onboarding")
        return view_func(request, *args, **kwargs)
    return _wrapped
