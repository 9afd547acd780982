"""Infrastructure implementations of domain repository contracts."""
