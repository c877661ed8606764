"""Core modules: plane clients, errors, crypto and input validation."""
