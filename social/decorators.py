from functools import wraps

from .errors import MethodNotAllowed, NotAuthenticated


def api_login_required(view_func):
    """Like login_required, but answers 401 JSON instead of redirecting."""

    @wraps(view_func)
    def _wrapped(request, *args, **kwargs):
        if not request.user.is_authenticated:
            raise NotAuthenticated("You are not logged in")
        return view_func(request, *args, **kwargs)

    return _wrapped


def api_methods(methods):
    """Like require_http_methods, with a JSON 405 body."""

    def decorator(view_func):
        @wraps(view_func)
        def _wrapped(request, *args, **kwargs):
            if request.method not in methods:
                raise MethodNotAllowed(f"Method {request.method} not allowed, use {', '.join(methods)}")
            return view_func(request, *args, **kwargs)

        return _wrapped

    return decorator
