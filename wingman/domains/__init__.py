"""Request-level services and the data store they read from."""
