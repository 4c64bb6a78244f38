"""OAuth 2.0 authorization server: protocol engines and FastAPI wiring."""
