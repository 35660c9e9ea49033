"""Shared dataclasses and enums for the nickname sync core."""
