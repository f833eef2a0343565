"""Dataset loaders and modeling-data preparation."""
