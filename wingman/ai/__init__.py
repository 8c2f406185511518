"""AI layer: providers, prompt caching, response repair and orchestration."""
