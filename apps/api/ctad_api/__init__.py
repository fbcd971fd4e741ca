"""CTAD - creation-time authorship declarations and process capture rewards."""

__version__ = "0.1.0"
