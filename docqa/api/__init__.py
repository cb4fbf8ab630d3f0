"""HTTP layer: routes, schemas, authentication and middleware."""
