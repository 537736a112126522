"""Connection services — state tracking, stream protocol, endpoint."""
