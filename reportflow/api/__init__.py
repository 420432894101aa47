"""Reportflow HTTP API layer.

This package provides the Falcon ASGI application through which callers
submit, inspect, download and delete report requests.

Usage
-----
Create and run the application::

    from reportflow.api import create_app

    app = create_app()              # health-only mode
    app = create_app(dependencies)  # full mode with report endpoints

Public API
----------
create_app
    Application factory registering health probes, error handlers and,
    when an orchestrator or runtime is provided, the report endpoints.
AppDependencies
    Container for the orchestrator or runtime backing the endpoints.
"""

from reportflow.api.app import AppDependencies, create_app

__all__ = ["AppDependencies", "create_app"]
