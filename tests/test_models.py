"""Tests for the shared data models."""

import pytest

from podtail.core.models import LogOptions, PodDescriptor


class TestPodDescriptor:
    """Test PodDescriptor model."""

    @pytest.mark.parametrize(
        "phase,expected",
        [("Running", True), ("Pending", False), ("Succeeded", False), (None, False)],
    )
    def test_is_running(self, phase, expected):
        """Test the running phase check."""
        assert PodDescriptor("api-7f9", "default", phase).is_running is expected


class TestLogOptions:
    """Test LogOptions model."""

    def test_defaults_follow(self):
        """Test that the default options follow the stream."""
        options = LogOptions()

        assert options.follow is True
        assert options.timestamps is False
        assert options.previous is False
        assert options.tail_lines is None
        assert options.since_seconds is None

    def test_for_history(self):
        """Test the one-shot read options."""
        options = LogOptions.for_history(previous=True, tail_lines=10, since_seconds=0)

        assert options.follow is False
        assert options.timestamps is True
        assert options.previous is True
        assert options.tail_lines == 10
        assert options.since_seconds is None

    def test_for_history_since(self):
        """Test a time bounded one-shot read."""
        options = LogOptions.for_history(previous=False, tail_lines=0, since_seconds=300)

        assert options.tail_lines is None
        assert options.since_seconds == 300
