"""Configuration, constants, exceptions and shared types."""
