"""Browser-facing JSON API for vmsim.

This package provides a Flask application that exposes one simulator
over HTTP.  It is an **optional** extra — install with::

    pip install vmsim[web]

The ``create_app`` factory in ``app.py`` serves:

- ``GET /api/state`` — the full snapshot.
- ``POST /api/operation`` — perform an operation, return update messages.
- ``POST /api/tick`` — run due deferred operations.
- ``GET /api/log`` — the event log.
"""
