"""Tests for clock and configuration."""
