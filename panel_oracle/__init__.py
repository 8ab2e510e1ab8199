"""panel-oracle: cited answers about manga chapters from retrieved panels and SBS entries."""

__version__ = "0.1.0"
