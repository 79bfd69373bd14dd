"""Core configuration for the Crypto Clarity service."""
