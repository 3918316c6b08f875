"""Emetals authentication front-end service."""
