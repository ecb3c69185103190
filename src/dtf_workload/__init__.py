"""Randomized operations driver for DTF fund contracts on a local EVM node."""

__version__ = "0.1.0"
