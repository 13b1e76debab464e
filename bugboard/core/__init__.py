"""
Core Client Logic
=================

This package contains the foundational client logic for BugBoard: the
authenticated session, the HTTP transport, the backend services, the
observable entity store and the controllers that keep the store in sync with
the server.
"""
