"""HPLM HTTP service."""
