from clinic.access import Decision, caller_or_none, evaluate, present

# Paths the page gate leaves alone; API permissions and the admin handle their own access.
SKIP_PREFIXES = ('/api/', '/static/', '/media/', '/metrics', '/healthz', '/swagger', '/redoc', '/django-admin/')


class AccessGateMiddleware:
    """Redirect page requests to sign-in, profile completion or /unauthorized."""

    def __init__(self, get_response):
        self.get_response = get_response

    def __call__(self, request):
        path = request.path or ''
        if path.startswith(SKIP_PREFIXES):
            return self.get_response(request)
        caller = caller_or_none(request)
        profile = caller.profile if caller else None
        decision = evaluate(path, caller, profile)
        if decision is not Decision.PROCEED:
            return present(decision, request, profile=profile)
        request.caller = caller
        return self.get_response(request)
