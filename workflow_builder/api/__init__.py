"""HTTP API for the workflow builder."""
