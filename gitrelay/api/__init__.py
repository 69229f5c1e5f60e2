"""gitrelay HTTP API layer.

This package provides the Falcon Asynchronous Server Gateway Interface
(ASGI) application: health probes, the GitHub webhook intake routes and
the optional admin routes.

Usage
-----
Create and run the application::

    from gitrelay.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # webhook routing and admin endpoints

Public API
----------
create_app
    Application factory that configures the Falcon ASGI app with
    health endpoints and optionally with webhook and admin endpoints.
"""

from gitrelay.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
