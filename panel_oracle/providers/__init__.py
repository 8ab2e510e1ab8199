"""Concrete adapters for the interfaces in ``panel_oracle.interfaces``."""
