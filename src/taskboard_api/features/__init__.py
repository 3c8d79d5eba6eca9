"""Feature packages (routers, services, repositories)."""
