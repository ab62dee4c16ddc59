"""Web API for the simulator.

This package provides a Flask application that exposes the simulator
over HTTP.  It is an **optional** extra — install with::

    pip install dinosim[web]

The ``create_app`` factory in ``app.py`` builds a simulator and serves
its memory layout, process submission and tick stepping as JSON.
"""
