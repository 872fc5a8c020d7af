"""ccmm core — project identity, CLAUDE.md parsing, presets, lock state machine."""
