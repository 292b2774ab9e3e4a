"""schemas: data model shared by the builder and the reshuffling engine."""
