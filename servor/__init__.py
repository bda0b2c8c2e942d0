"""
servor — HTTPS static dev server with live reload.

Serves a directory over TLS, falls back to a single entry document for
client-side routes, and pushes reload events to open browser tabs whenever
files under the served root change.
"""

__version__ = "4.0.0"
