"""refnet — referral network construction and layout engine."""

__version__ = "0.1.0"
