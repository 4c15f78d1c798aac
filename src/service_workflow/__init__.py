"""Church-service workflow: task catalog, status store and background sync."""
