"""Library management: REST API, client services and command line frontend."""

__version__ = "1.0.0"
