"""Bearer-token authentication for client and admin endpoints."""
