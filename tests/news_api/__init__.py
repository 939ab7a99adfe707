"""Tests for the request facade and HTTP surface."""
