import logging
from typing import Any, List, Mapping, Optional

from scipy.stats import qmc

from modules.hpo_search_engine.search_space import Configuration, HyperparameterSpace
from utils.exceptions import ConfigurationError, EmptySpaceError


class CandidateGenerator:
    """
    Space-filling candidate design.

    Samples a Latin hypercube in the unit cube (one point per stratum in every
    dimension, then optimised for low centred discrepancy) and maps each
    coordinate onto its parameter's range. Candidates are generated eagerly,
    so an evaluation budget simply caps how many are drawn.
    """

    def __init__(self, logger: logging.Logger, max_candidates: Optional[int] = None):
        self.logger = logger
        self.max_candidates = max_candidates

    def generate(self, space: HyperparameterSpace, count: int, seed: int,
                 model_name: str = "model", fixed_params: Optional[Mapping[str, Any]] = None) -> List[Configuration]:
        """
        Produce up to `count` configurations in generation order.

        Args:
            space: Tunable parameters of the model family.
            count: Number of candidates requested.
            seed: Seed of the design; equal seeds give equal designs.
            model_name: Adapter name stored on every configuration.
            fixed_params: Values used when the space is empty.
        """
        if count < 1:
            raise ConfigurationError(f"Candidate count must be >= 1, got {count}")

        if len(space) == 0:
            if count > 1:
                raise EmptySpaceError(
                    f"'{model_name}' has no tunable parameters; cannot generate {count} distinct candidates."
                )
            return [Configuration(model_name, dict(fixed_params or {}), 0)]

        if self.max_candidates is not None and count > self.max_candidates:
            self.logger.warning(f"Candidate budget ({self.max_candidates}) caps the requested {count} candidates.")
            count = self.max_candidates

        # Centred-discrepancy optimisation needs at least two dimensions
        optimization = "random-cd" if len(space) > 1 else None
        sampler = qmc.LatinHypercube(d=len(space), optimization=optimization, seed=seed)
        design = sampler.random(n=count)

        candidates: List[Configuration] = []
        seen = set()
        for row in design:
            params = {p.name: p.from_unit(u) for p, u in zip(space, row)}
            config = Configuration(model_name, params, len(candidates))
            if config.config_id in seen:
                continue
            seen.add(config.config_id)
            candidates.append(config)

        if len(candidates) < count:
            self.logger.warning(
                f"{count - len(candidates)} duplicate candidates dropped for '{model_name}' "
                f"(space too narrow for {count} distinct points)."
            )

        self.logger.info(f"Generated {len(candidates)} space-filling candidates for '{model_name}' (seed={seed}).")
        return candidates
