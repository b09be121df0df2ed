"""Personal Finance Tracker dashboard.

Streamlit front end (``app.py``) for a remote transactions API, signed in
through an OIDC provider. ``server.py`` is a local stand-in for that API.
"""
