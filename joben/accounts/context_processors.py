from .session import get_context


def profile_nav(request):
    ctx = get_context(request)
    profile = ctx.profile if ctx.is_authenticated else None
    return {
        "current_profile": profile,
        "current_role": profile.role if profile else None,
    }
