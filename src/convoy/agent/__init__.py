"""Record loading and reconciliation passes."""
