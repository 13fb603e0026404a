"""HTTP server for the decision record service."""
