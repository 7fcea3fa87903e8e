"""Pure, deterministic transforms. Nothing in this package performs I/O."""
