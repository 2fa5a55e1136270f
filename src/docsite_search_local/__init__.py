"""Search document extraction for documentation sites."""
