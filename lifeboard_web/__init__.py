"""
Lifeboard web layer.

create_app() mounts:
- auth_routes.router        (/auth)
- one router per resource   (/todos, /plans, ...)
- suggestion_routes.router  (/ai)
"""

from .app import create_app

__all__ = ["create_app"]
