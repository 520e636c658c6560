"""Multibagger screener: nine-factor equity scoring over multi-provider data."""

__version__ = "0.1.0"
