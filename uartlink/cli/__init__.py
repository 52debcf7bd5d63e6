"""Command-line tools for encoding and decoding serial line captures."""
