"""chatrelay — carry an AI chat over to a new session when the old one hits its limit."""

__version__ = "0.1.0"
