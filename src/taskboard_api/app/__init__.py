"""Application wiring: lifespan, dependencies and router assembly."""
