"""Tests for Pocket Alarm."""
