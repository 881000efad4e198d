"""CLI module for swaprpc."""
