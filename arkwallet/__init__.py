"""Wallet tools for agents: gated dispatch, uniform envelopes, balance with fiat."""

__version__ = "0.1.0"
