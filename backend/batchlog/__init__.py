"""Live batch job log streaming with client-side filtering, sorting and paging."""

__version__ = "0.1.0"
