"""Version string ordering."""
