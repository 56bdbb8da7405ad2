"""fifi - playbook-run dispatch to satellite-managed executors."""

__version__ = "0.1.0"
