from __future__ import annotations

import logging
import os
import random

import numpy as np

log = logging.getLogger(__name__)

# sklearn / numpy legacy seeding accept 0 <= seed < 2**32
MAX_SEED = 2**32 - 1


def set_global_seed(seed: int) -> int:
    """Seed Python and NumPy. Estimators and splitters still get random_state=seed."""
    seed = int(seed)
    if not 0 <= seed <= MAX_SEED:
        raise ValueError(f"Seed must be within [0, {MAX_SEED}], got {seed}")
    os.environ["PYTHONHASHSEED"] = str(seed)
    random.seed(seed)
    np.random.seed(seed)
    log.debug("Global seed set to %d", seed)
    return seed
