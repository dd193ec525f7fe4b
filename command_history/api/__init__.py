"""HTTP surface for the process-wide history."""
