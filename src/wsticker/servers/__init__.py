"""Network servers."""
