"""Core subsystems: configuration, logging, node store and flushed filtering."""
