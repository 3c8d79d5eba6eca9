"""Web Push subscriptions."""
