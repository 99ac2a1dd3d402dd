"""Discord binding for the whitelist flow."""
