"""
Server actions.

A server action runs in the trusted server context, performs one persistence
effect and then reports which cached pages went stale and where the caller
should navigate. Actions register themselves by name with ``server_action``
and are invoked either directly (from page views) or remotely through
``POST /actions/<name>``, which wraps the outcome in an ``ActionResult``.
"""

import inspect
from flask import g, current_app
from flask_login import current_user
from studysync.extensions import db
from studysync.errors import NotAuthenticatedError, NotFoundError, ValidationError
from studysync.services.page_cache import page_cache

_registry = {}


class ActionResult:
    """Outcome of a remotely invoked action."""

    def __init__(self, data=None, revalidated=None, redirect=None):
        self.data = data
        self.revalidated = revalidated or []
        self.redirect = redirect

    def to_dict(self):
        return {
            "success": True,
            "data": self.data,
            "revalidated": self.revalidated,
            "redirect": self.redirect,
        }


def server_action(name):
    """Register the decorated function as the action ``name``."""
    def decorator(f):
        if name in _registry:
            raise ValueError(f"Duplicate server action: {name}")
        _registry[name] = f
        return f
    return decorator


def registered_actions():
    return sorted(_registry)


def require_user():
    """Return the signed-in user or raise NotAuthenticatedError."""
    if not current_user.is_authenticated:
        raise NotAuthenticatedError()
    return current_user._get_current_object()


def revalidate_path(path):
    """Mark cached output for ``path`` stale and record it for the caller."""
    page_cache.revalidate(path)
    revalidated = g.setdefault("revalidated_paths", [])
    if path not in revalidated:
        revalidated.append(path)


def redirect_to(path):
    """Ask the caller to navigate to ``path`` once the action completes."""
    g.action_redirect = path


def run_action(name, arguments=None):
    """
    Invoke a registered action with keyword ``arguments``.

    The persistence effect is committed by the action itself; revalidation
    and redirect signals are only returned when it completes without error.
    """
    action = _registry.get(name)
    if action is None:
        raise NotFoundError(f"Unknown action: {name}")

    arguments = arguments or {}
    if not isinstance(arguments, dict):
        raise ValidationError("Action arguments must be an object")
    try:
        inspect.signature(action).bind(**arguments)
    except TypeError as e:
        raise ValidationError(f"Invalid arguments for {name}: {e}")

    g.revalidated_paths = []
    g.action_redirect = None
    try:
        data = action(**arguments)
    except Exception:
        db.session.rollback()
        raise

    current_app.logger.info(f"Action {name} completed")
    return ActionResult(
        data=data,
        revalidated=list(g.revalidated_paths),
        redirect=g.action_redirect,
    )
