import threading
from collections import OrderedDict
from functools import wraps
from flask import current_app, request
from flask_login import current_user


def _normalize(path):
    return path.rstrip("/") or "/"


class PageCache:
    """
    Rendered page output keyed by (user id, path, query string), invalidated by path.

    Entries live in process memory and are evicted least-recently-used once
    PAGE_CACHE_MAX_ENTRIES is reached. Each worker process holds its own copy.
    """

    def __init__(self, app=None):
        if app is not None:
            self.init_app(app)

    def init_app(self, app):
        app.config.setdefault("PAGE_CACHE_ENABLED", True)
        app.config.setdefault("PAGE_CACHE_MAX_ENTRIES", 256)
        app.extensions["page_cache"] = {"entries": OrderedDict(), "lock": threading.Lock()}

    def _state(self):
        return current_app.extensions["page_cache"]

    def get(self, user_id, path, query=b""):
        key = (user_id, _normalize(path), query)
        state = self._state()
        with state["lock"]:
            body = state["entries"].get(key)
            if body is not None:
                state["entries"].move_to_end(key)
            return body

    def set(self, user_id, path, body, query=b""):
        key = (user_id, _normalize(path), query)
        limit = current_app.config["PAGE_CACHE_MAX_ENTRIES"]
        state = self._state()
        with state["lock"]:
            state["entries"][key] = body
            state["entries"].move_to_end(key)
            while len(state["entries"]) > limit:
                state["entries"].popitem(last=False)

    def revalidate(self, path):
        """Drop cached output for ``path`` and every page below it. Returns the number dropped."""
        target = _normalize(path)
        prefix = target if target.endswith("/") else target + "/"
        state = self._state()
        with state["lock"]:
            stale = [key for key in state["entries"] if key[1] == target or key[1].startswith(prefix)]
            for key in stale:
                del state["entries"][key]
        current_app.logger.debug(f"Revalidated {target}: {len(stale)} cached page(s) dropped")
        return len(stale)

    def clear(self):
        state = self._state()
        with state["lock"]:
            state["entries"].clear()

    def size(self):
        state = self._state()
        with state["lock"]:
            return len(state["entries"])


page_cache = PageCache()


def cached_page(view):
    """Serve a page view's rendered output from the page cache until its path is revalidated."""
    @wraps(view)
    def decorated_function(*args, **kwargs):
        if not current_app.config["PAGE_CACHE_ENABLED"] or not current_user.is_authenticated:
            return view(*args, **kwargs)
        body = page_cache.get(current_user.id, request.path, request.query_string)
        if body is None:
            body = view(*args, **kwargs)
            page_cache.set(current_user.id, request.path, body, request.query_string)
        return body
    return decorated_function
