import jax.numpy as jnp
import numpy as np

from lbmflow.lbm import D3Q27, FluidLattice, Grid, stream

lattice = FluidLattice(D3Q27)


def test_stream_moves_population_along_direction():
    grid = Grid(5, 4, 3)
    source = (1, 2, 1)
    for i in range(1, D3Q27.Q):
        df = jnp.zeros(grid.shape + (27,)).at[source + (i,)].set(1.0)
        streamed = stream(lattice, df)

        target = tuple(
            (s + int(c)) % n for s, c, n in zip(source, D3Q27.e[:, i], grid.shape)
        )
        assert streamed[target + (i,)] == 1.0
        assert jnp.sum(streamed) == 1.0


def test_stream_keeps_rest_population():
    df = jnp.zeros((3, 3, 3, 27)).at[1, 1, 1, 0].set(2.0)
    streamed = stream(lattice, df)
    assert streamed[1, 1, 1, 0] == 2.0
    assert jnp.sum(streamed) == 2.0


def test_stream_wraps_at_edges():
    grid = Grid(4, 4, 4)
    i = int(np.argmax(np.all(np.asarray(D3Q27.e).T == [1, -1, 0], axis=1)))
    df = jnp.zeros(grid.shape + (27,)).at[3, 0, 2, i].set(1.0)
    streamed = stream(lattice, df)
    assert streamed[0, 3, 2, i] == 1.0


def test_stream_does_not_modify_input():
    df = jnp.arange(2 * 3 * 4 * 27, dtype=jnp.float32).reshape((2, 3, 4, 27))
    copy = np.array(df)
    stream(lattice, df)
    assert (np.asarray(df) == copy).all()


def test_stream_conserves_populations_per_direction():
    df = jnp.arange(3 * 4 * 5 * 27, dtype=jnp.float32).reshape((3, 4, 5, 27))
    streamed = stream(lattice, df)
    assert jnp.allclose(jnp.sum(streamed, axis=(0, 1, 2)), jnp.sum(df, axis=(0, 1, 2)))
