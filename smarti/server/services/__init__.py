"""Request scoped services for the API: authentication and dependencies."""
