"""Core module - settings, typed errors and observability.

Shared by the extraction, storage, connector and weighing packages. Nothing
here knows about a particular identifier or weight source.
"""

__version__ = "1.0.0"
