"""Test suite for podtail."""
