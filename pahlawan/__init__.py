"""Services for rescuing surplus food: matching, pricing, escrow, outbox events and impact."""

__version__ = "0.1.0"