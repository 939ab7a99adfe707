"""Test suite for the news cache service."""
