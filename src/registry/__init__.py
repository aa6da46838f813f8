"""Package sources and the metadata resolution pipeline."""
