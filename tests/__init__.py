"""Tests for snapmixer."""
