"""complint - license and origin compliance checks for software artifacts."""

__version__ = "0.1.0"
