"""Domain types shared across the reconciler, store and integrations."""
