"""HTTP surface: Stripe webhook receiver and admin JSON endpoints."""

from backoffice.api.app import create_app

__all__ = ["create_app"]
