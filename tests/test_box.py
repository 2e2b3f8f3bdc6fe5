"""Tests for Box class."""

from dataclasses import FrozenInstanceError

import numpy as np
import pytest

from trajkit.system.box import Box


class TestBoxCreation:
    """Test box creation methods."""

    def test_cubic_box(self):
        """Test creating a cubic box."""
        box = Box.cubic(10.0)
        assert np.allclose(box.lengths, [10.0, 10.0, 10.0])
        assert box.is_orthorhombic
        assert np.isclose(box.volume, 1000.0)

    def test_orthorhombic_box(self):
        """Test creating an orthorhombic box."""
        box = Box.orthorhombic(10.0, 20.0, 30.0)
        assert np.allclose(box.lengths, [10.0, 20.0, 30.0])
        assert box.is_orthorhombic
        assert np.isclose(box.volume, 6000.0)

    def test_triclinic_box(self):
        """Test creating a triclinic box."""
        vectors = [
            [10.0, 0.0, 0.0],
            [2.0, 10.0, 0.0],
            [1.0, 1.0, 10.0],
        ]
        box = Box.triclinic(vectors)
        assert not box.is_orthorhombic
        assert np.isclose(box.volume, 1000.0)

    def test_invalid_shape(self):
        """Test that invalid shapes raise errors."""
        with pytest.raises(ValueError):
            Box(np.array([1.0, 2.0]))

    def test_frozen(self):
        """Boxes are immutable value objects."""
        box = Box.cubic(5.0)
        with pytest.raises(FrozenInstanceError):
            box.vectors = np.eye(3)


class TestCellParameters:
    """Crystallographic lengths and angles."""

    def test_right_angles_give_diagonal(self):
        box = Box.from_lengths_angles(30.0, 31.0, 32.0)
        assert box.is_orthorhombic
        np.testing.assert_allclose(np.diag(box.vectors), [30.0, 31.0, 32.0])

    def test_round_trip_angles(self):
        """Lengths and angles survive conversion to vectors."""
        box = Box.from_lengths_angles(20.0, 22.0, 25.0, 80.0, 95.0, 110.0)
        assert not box.is_orthorhombic
        np.testing.assert_allclose(box.lengths, [20.0, 22.0, 25.0])
        np.testing.assert_allclose(box.angles, [80.0, 95.0, 110.0])

    def test_a_along_x(self):
        box = Box.from_lengths_angles(10.0, 10.0, 10.0, 60.0, 60.0, 60.0)
        np.testing.assert_allclose(box.vectors[0], [10.0, 0.0, 0.0])
        assert box.vectors[1, 2] == 0.0

    def test_orthorhombic_angles(self):
        np.testing.assert_allclose(Box.cubic(4.0).angles, [90.0, 90.0, 90.0])


class TestPeriodicBoundaries:
    """Test periodic boundary condition methods."""

    def test_wrap_positions_orthorhombic(self):
        """Test position wrapping for orthorhombic box."""
        box = Box.cubic(10.0)
        positions = np.array([[12.0, -1.0, 5.0], [-10.5, 25.0, 0.0]])
        wrapped = box.wrap_positions(positions)
        np.testing.assert_allclose(wrapped, [[2.0, 9.0, 5.0], [9.5, 5.0, 0.0]])

    def test_wrap_positions_triclinic(self):
        """Wrapped triclinic positions lie in the unit fractional cell."""
        box = Box.from_lengths_angles(10.0, 10.0, 10.0, 90.0, 90.0, 60.0)
        positions = np.array([[25.0, 3.0, -4.0], [-7.0, 12.0, 31.0]])
        wrapped = box.wrap_positions(positions)
        fractional = wrapped @ np.linalg.inv(box.vectors)
        assert np.all(fractional >= -1e-12)
        assert np.all(fractional < 1.0 + 1e-12)
        shift = (positions - wrapped) @ np.linalg.inv(box.vectors)
        np.testing.assert_allclose(shift, np.round(shift), atol=1e-10)
