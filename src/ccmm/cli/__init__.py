"""ccmm command-line interface."""
