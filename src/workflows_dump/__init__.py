"""Export workflow bundles and stash tables from the workflows web API."""

__version__ = "0.1.0"
