"""Read-path and write-path machinery used by the services."""
