"""Web API for depstat."""

from depstat.web.app import create_app

__all__ = ["create_app"]
