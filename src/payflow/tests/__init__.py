"""Tests for PayFlow."""
