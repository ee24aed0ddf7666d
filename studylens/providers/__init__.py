"""Concrete adapters for the interfaces in ``studylens.interfaces``."""
