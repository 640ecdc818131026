import jax.numpy as jnp
import numpy as np
import pytest

from lbmflow.lbm import ConfigurationError, Grid


def test_linear_index_layout():
    grid = Grid(4, 3, 2)
    assert grid.linear_index(0, 0, 0) == 0
    assert grid.linear_index(1, 0, 0) == 1
    assert grid.linear_index(0, 1, 0) == 4
    assert grid.linear_index(0, 0, 1) == 12
    assert grid.linear_index(3, 2, 1) == grid.node_count() - 1


def test_linear_index_is_bijective():
    grid = Grid(5, 4, 3)
    X, Y, Z = grid.meshgrid()
    indices = grid.linear_index(X, Y, Z)
    assert sorted(indices.ravel().tolist()) == list(range(grid.node_count()))

    x, y, z = grid.coordinates(indices)
    assert (x == X).all() and (y == Y).all() and (z == Z).all()


def test_coordinates_scalar():
    grid = Grid(5, 4, 3)
    assert grid.coordinates(grid.linear_index(2, 3, 1)) == (2, 3, 1)


def test_out_of_range_index():
    grid = Grid(2, 2, 2)
    with pytest.raises(IndexError):
        grid.linear_index(2, 0, 0)
    with pytest.raises(IndexError):
        grid.coordinates(8)


def test_population_index():
    assert Grid.population_index(0, 0) == 0
    assert Grid.population_index(3, 5) == 3 * 27 + 5


@pytest.mark.parametrize("shape", [(0, 2, 2), (2, -1, 2), (2, 2, 1.5)])
def test_invalid_dimensions(shape):
    with pytest.raises(ConfigurationError):
        Grid(*shape)


def test_to_linear_follows_linear_index():
    grid = Grid(3, 2, 2)
    X, Y, Z = grid.meshgrid()
    field = jnp.stack([X, Y, Z], axis=-1)

    flat = grid.to_linear(field)
    assert flat.shape == (grid.node_count(), 3)
    for index in range(grid.node_count()):
        assert tuple(int(c) for c in flat[index]) == grid.coordinates(index)

    assert (grid.from_linear(flat) == field).all()


def test_to_linear_rejects_wrong_shape():
    grid = Grid(3, 2, 2)
    with pytest.raises(ValueError):
        grid.to_linear(np.zeros((2, 3, 2)))
