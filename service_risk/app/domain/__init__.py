"""
Domain layer for the Risk Gateway.

Holds request authentication, connection resolution and the risk settings
and account operations. Transport concerns stay in app.main and app.adapters.
"""
