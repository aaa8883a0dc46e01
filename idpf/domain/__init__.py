"""Pure domain logic: no filesystem, no subprocess."""
