"""Shared helpers with no engine state."""
