"""GitHub webhook intake resources."""
