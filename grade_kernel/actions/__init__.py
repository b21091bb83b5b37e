"""Post-resolution action handlers and the registry that maps keys to them."""
