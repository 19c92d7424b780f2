"""Exchange connectivity and local order book."""
