"""Built-in lint rules."""
