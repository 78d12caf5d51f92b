"""Tests for protop data models."""

from datetime import datetime

from protop.models import CpuGroup, LoadAverage, Reading, ViewModel, Volume


def test_volume_creation():
    """Test Volume dataclass creation."""
    volume = Volume(
        device="/dev/nvme0n1p2",
        mount_points=("/", "/home"),
        size=Reading(512 * 1024**3, "512.0 G"),
        used=Reading(128 * 1024**3, "128.0 G"),
        scale=25.0,
    )

    assert volume.device == "/dev/nvme0n1p2"
    assert volume.mount_points == ("/", "/home")
    assert volume.size.text == "512.0 G"
    assert volume.scale == 25.0
    assert volume.read_rate == Reading(0, "")
    assert volume.write_rate == Reading(0, "")


def test_view_model_is_frozen():
    """Test that ViewModel is immutable (frozen)."""
    view_model = ViewModel(hostname="db-02")

    # Attempting to modify should raise an error
    try:
        view_model.hostname = "other"
        raise AssertionError("Should have raised FrozenInstanceError")
    except AttributeError:
        pass  # Expected behavior for frozen dataclass


def test_models_use_slots():
    """Test that models use __slots__ for memory efficiency."""
    # Slots-based dataclasses don't have __dict__
    assert not hasattr(ViewModel(), "__dict__")
    assert not hasattr(CpuGroup(threads=1, usage=(5.0,)), "__dict__")
    assert not hasattr(LoadAverage(), "__dict__")


def test_view_model_defaults_are_zeroed():
    """Test the placeholder view model before the first fetch."""
    view_model = ViewModel()

    assert view_model.logical_cores == 0
    assert view_model.cpu == 0.0
    assert view_model.load_average_scale == LoadAverage(0.0, 0.0, 0.0)
    assert view_model.memory.total == Reading(0, "")
    assert view_model.volumes == ()
    assert view_model.last_update_text == "Never"


def test_last_update_text():
    """Test the refresh timestamp is rendered in local time."""
    view_model = ViewModel(last_update=datetime(2024, 3, 1, 12, 30, 5))

    assert view_model.last_update_text == "2024-03-01 12:30:05"
