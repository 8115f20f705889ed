"""Core module - types, config, exceptions, logging."""
