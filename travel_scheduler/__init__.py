"""travel_scheduler: day schedule builder and real-time reshuffling engine."""
