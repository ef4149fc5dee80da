"""Configuration, logging, errors and shared constants."""
