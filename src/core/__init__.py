"""Configuration, authentication and identity-provider access."""
