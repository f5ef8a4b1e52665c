"""scm-migrate: resumable source-control organization migration."""

__version__ = "0.1.0"
