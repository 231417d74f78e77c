"""Shared fixtures."""

import pytest

from .fakes import CapturedWriter, FakePodSource, make_allocator, make_settings


@pytest.fixture
def source():
    return FakePodSource()


@pytest.fixture
def writer():
    return CapturedWriter()


@pytest.fixture
def settings():
    return make_settings()


@pytest.fixture
def allocator():
    return make_allocator()
