"""release-publisher: open operator release pull requests on catalog repositories."""

__version__ = "0.1.0"
