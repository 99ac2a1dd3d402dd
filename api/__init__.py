"""Admin HTTP routes for the whitelist flow."""
