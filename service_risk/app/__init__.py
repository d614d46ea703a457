"""
Risk Gateway service package.

The gateway resolves "which user, using which named connection" into a
short-lived client bound to one delegated trading-platform credential, and
reads or writes the account's auto-liquidation settings through it.

Structure:
- app.main: FastAPI app, routes, and service wiring.
- app.auth: Identity token verification (JWKS).
- app.adapters: Credential store lookup and the authorized trading client.
- app.caching: Process-local risk settings cache.
- app.domain: Request authentication, risk settings and account operations.
"""
