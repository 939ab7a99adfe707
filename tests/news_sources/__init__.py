"""
Tests for the News Sources package.

Covers:
- Item normalization
- Source registry and YAML loading
- Source gateway timeout and failure classification
- RSS and Hacker News providers
"""
