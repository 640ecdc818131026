import logging
import threading
import time
import warnings

import numpy as np

from lbmflow import lbm as lbm

from tqdm.rich import trange
from tqdm import TqdmExperimentalWarning

warnings.filterwarnings("ignore", category=TqdmExperimentalWarning)

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger("cylinder")


def watch(sim, stop, period=0.5):
    """Polls the latest published frame, like a data server would."""
    last = 0
    while not stop.wait(period):
        snapshot = sim.snapshot()
        if snapshot.frame == last:
            continue
        last = snapshot.frame
        speed = np.linalg.norm(snapshot.velocity, axis=-1)
        logger.info(
            "frame %d: max speed %.4f, mean density %.4f",
            snapshot.frame,
            speed.max(),
            snapshot.density.mean(),
        )


if __name__ == "__main__":
    # Simulation parameters
    nx, ny, nz = 96, 32, 24

    config = lbm.SimulationConfig(
        shape=(nx, ny, nz),
        tau=0.56,
        inflow_velocity=(0.08, 0.0, 0.0),
        boundary="box",
        obstacle_radius=ny / 6,
        perturbation=0.01,
    )
    sim = lbm.Simulation(config)

    steps = 2000

    stop = threading.Event()
    watcher = threading.Thread(target=watch, args=(sim, stop), daemon=True)
    watcher.start()

    start = time.perf_counter()
    try:
        for i in trange(steps):
            sim.advance()
    except lbm.NumericalInstabilityError as err:
        logger.error("Stopping simulation: %s", err)
    finally:
        stop.set()
        watcher.join()

    elapsed = time.perf_counter() - start
    mlups = sim.node_count() * sim.frame / elapsed / 1e6
    logger.info("%d frames in %.1fs (%.2f MLUPS)", sim.frame, elapsed, mlups)
