"""
Carbon Credit Registry

A single-ledger registry of participants, carbon credits and climate projects.
"""

__version__ = "1.0.0"
