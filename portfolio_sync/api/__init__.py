"""HTTP reader surface."""
