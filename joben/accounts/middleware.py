from .session import ProfileContext


class ProfileContextMiddleware:
    """Attach a fresh ProfileContext to each request and clear it afterwards."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        request.profile_context = ProfileContext(request.user)
        try:
            return self.get_response(request)
        finally:
            request.profile_context.clear()
