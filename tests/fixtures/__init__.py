"""Shared map builders for stagemap tests."""
