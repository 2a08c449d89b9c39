"""Adapters for external services."""

from backoffice.integrations.stripe_gateway import StripeGateway

__all__ = ["StripeGateway"]
