"""Infrastructure layer: crypto, rate limiting, HTTP integrations, observability."""
