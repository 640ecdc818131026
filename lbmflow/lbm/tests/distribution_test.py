import jax
import jax.numpy as jnp
import pytest

from lbmflow.lbm import D3Q27, DistributionField, FluidLattice, Grid, check_stability
from lbmflow.lbm.errors import NumericalInstabilityError

lattice = FluidLattice(D3Q27)


def test_initialize_to_weights():
    field = DistributionField.initialize(lattice, Grid(3, 2, 2))
    assert field.shape == (3, 2, 2, 27)
    assert jnp.allclose(field.current, jnp.broadcast_to(D3Q27.w, field.shape))
    assert field.total_mass() == pytest.approx(12.0, rel=1e-6)


def test_initialize_with_perturbation():
    grid = Grid(4, 4, 4)
    field = DistributionField.initialize(
        lattice, grid, perturbation=0.1, key=jax.random.PRNGKey(7)
    )
    relative = field.current / D3Q27.w
    assert not jnp.allclose(relative, 1.0)
    assert (jnp.abs(relative - 1.0) <= 0.1 + 1e-6).all()

    again = DistributionField.initialize(
        lattice, grid, perturbation=0.1, key=jax.random.PRNGKey(7)
    )
    assert (again.current == field.current).all()


def test_commit_and_shape_checks():
    field = DistributionField.initialize(lattice, Grid(2, 2, 2))
    streamed = jnp.ones(field.shape)
    collided = jnp.full(field.shape, 2.0)
    field.commit(streamed, collided)
    assert (field.streamed == 1.0).all()
    assert (field.current == 2.0).all()

    with pytest.raises(AssertionError):
        field.set_current(jnp.zeros((2, 2, 27)))


def test_check_stability_accepts_healthy_state():
    df = jnp.broadcast_to(D3Q27.w, (2, 2, 2, 27))
    check_stability(1, df, lattice.get_macroscopics(df), D3Q27.cs)


def test_check_stability_rejects_velocity_runaway():
    df = jnp.broadcast_to(D3Q27.w, (2, 2, 2, 27))
    fluid_state = lattice.Macroscopics(
        jnp.ones((2, 2, 2, 1)), jnp.zeros((2, 2, 2, 3)).at[0, 0, 0, 0].set(0.9)
    )
    with pytest.raises(NumericalInstabilityError) as excinfo:
        check_stability(4, df, fluid_state, D3Q27.cs)
    assert excinfo.value.frame == 4
    assert excinfo.value.bad_nodes == 1


def test_check_stability_rejects_infinite_populations():
    df = jnp.broadcast_to(D3Q27.w, (2, 2, 2, 27)).at[1, 1, 0, 3].set(jnp.inf)
    healthy = lattice.get_macroscopics(jnp.broadcast_to(D3Q27.w, (2, 2, 2, 27)))
    with pytest.raises(NumericalInstabilityError) as excinfo:
        check_stability(2, df, healthy, D3Q27.cs)
    assert excinfo.value.bad_nodes == 1
