"""FirstBites core engine."""
