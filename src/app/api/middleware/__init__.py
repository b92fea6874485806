"""API middleware: structured request logging with meeting audit events."""
