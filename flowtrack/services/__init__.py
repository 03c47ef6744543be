"""Services around the request workflow."""
