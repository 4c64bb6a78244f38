"""HTTP layer for the authorization server."""
