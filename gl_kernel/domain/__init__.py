"""Pure domain layer: value objects, registry, FX policy, clock. Zero I/O."""
