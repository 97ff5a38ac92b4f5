"""
Momentum - API Package
======================

FastAPI routers and dependencies.
"""
