"""Core signal computation logic: indicators, regimes, weights, confluence.

This package contains pure business logic with no I/O dependencies
(no network, no event loop, no settings). The service layer (app/)
feeds it price windows and reads back signals.
"""
