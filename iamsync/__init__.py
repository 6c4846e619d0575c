"""iamsync: provisioning of identity principals with one-time credentials and exactly-once creation audit."""

__version__ = "1.0.0"
